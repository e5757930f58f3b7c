from nexalink.store.connection_store import ConnectionStore
from nexalink.store.server import DetachedSession, ServerFactory, ServerSession

__all__ = ["ConnectionStore", "DetachedSession", "ServerFactory", "ServerSession"]
