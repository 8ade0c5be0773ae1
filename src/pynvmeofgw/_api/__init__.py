"""RPC endpoint modules for the managed gateway and the monitor group service."""
