"""Application state — stores, services, and the broadcast coordinator.

Learn: One object wires everything together so route handlers and the
WebSocket endpoint reach their collaborators through app.state.shop
instead of module globals. main.lifespan builds it from settings; tests
build it directly against a throw-away database.
"""

import structlog

from shopfloor.auth.sessions import SessionStore, build_session_store
from shopfloor.db.engine import Databases
from shopfloor.realtime.coordinator import BroadcastCoordinator
from shopfloor.repositories.credentials import CredentialStore
from shopfloor.repositories.messages import MessageRepository
from shopfloor.repositories.products import ProductRepository
from shopfloor.services.auth_service import AuthService

logger = structlog.get_logger()


class AppState:
    def __init__(self, databases: Databases, sessions: SessionStore):
        self.databases = databases
        self.sessions = sessions
        self.credentials = CredentialStore(databases.credentials)
        self.auth = AuthService(self.credentials)
        self.messages = MessageRepository(databases.messages)
        self.products = ProductRepository(databases.catalog)
        self.coordinator = BroadcastCoordinator(self.messages, self.products)

    @classmethod
    def from_settings(cls) -> "AppState":
        return cls(Databases.from_settings(), build_session_store())

    async def start(self) -> None:
        await self.databases.create_all()
        logger.info("shopfloor.stores_ready", engines=len(self.databases.engines))

    async def close(self) -> None:
        await self.sessions.close()
        await self.databases.dispose()
