from liqwatch.clients.rpc import RPC

__all__ = ["RPC"]
