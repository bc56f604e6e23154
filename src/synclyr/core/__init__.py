"""Core sync engine: transport, LRCLIB client, resolution policy and dispatcher."""
