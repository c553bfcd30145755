"""
Shared helpers (configuration, logging) for the dnsync CLI.
"""
