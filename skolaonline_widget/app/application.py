"""
Application state container for the Škola OnLine widget.

- Defines the Application class.
- Builds the state stores, HTTP clients, navigation state machine and refresh
  orchestrator from a config dict.
- Provides a central object for the CLI and embedding hosts.
"""

from datetime import date
from typing import Callable, Optional

from skolaonline_widget import logger, request_retry_config
from skolaonline_widget.api_client import ApiClient, create_httpx_client
from skolaonline_widget.app.orchestrator import RefreshOrchestrator
from skolaonline_widget.auth import TokenAuthenticator
from skolaonline_widget.constants import KEY_REFRESH_TOKEN
from skolaonline_widget.extractors.timetable import NormalizerPolicy
from skolaonline_widget.navigation import NavigationStateMachine
from skolaonline_widget.services import ConnectivityChecker, Scheduler
from skolaonline_widget.state_store import JsonFileStateStore, StateStore

def refresh_stale_after(timeout: float, retry_delay: float) -> float:
    """Age after which a persisted in-flight refresh counts as abandoned.

    Covers the three requests of a refresh with all their attempts, plus one
    connectivity retry delay.
    """
    return 3 * timeout * request_retry_config["max_tries"] + retry_delay

class Application:
    def __init__(
        self,
        config: dict,
        widget_store: Optional[StateStore] = None,
        token_store: Optional[StateStore] = None,
        connectivity: Optional[ConnectivityChecker] = None,
        scheduler: Optional[Scheduler] = None,
        today: Callable[[], date] = date.today
    ):
        self.config = config

        self.widget_store = widget_store or JsonFileStateStore(config["state_path"])
        self.token_store = token_store or JsonFileStateStore(config["credentials_path"])

        self.http_client = create_httpx_client(config["timeout"])
        self.authenticator = TokenAuthenticator(self.token_store, client=self.http_client,
                                                timeout=config["timeout"])
        self.api_client = ApiClient(client=self.http_client, timeout=config["timeout"])

        self.policy = NormalizerPolicy(
            deduplicate_slots=config.get("deduplicate_slots", True),
            single_room_teacher_only=config.get("single_room_teacher_only", True),
            relative_date_labels=config.get("relative_labels", False),
        )
        self.navigation = NavigationStateMachine(
            self.widget_store,
            stale_after=refresh_stale_after(config["timeout"], config["retry_delay"]),
        )
        self.orchestrator = RefreshOrchestrator(
            self.navigation,
            self.authenticator,
            self.api_client,
            connectivity=connectivity,
            scheduler=scheduler,
            policy=self.policy,
            retry_delay=config["retry_delay"],
            connectivity_notice_after=config["connectivity_notice_after"],
            max_connectivity_retries=config.get("max_connectivity_retries"),
            today=today,
            land_on_today=config.get("land_on_today", False),
        )

    async def start(self) -> None:
        """Make sure the widget state exists."""
        await self.navigation.initialize()

    async def set_refresh_token(self, token: str) -> None:
        token = token.strip()
        if not token:
            raise ValueError("Refresh token must not be empty")
        await self.token_store.set(KEY_REFRESH_TOKEN, token)
        logger.info("Refresh token stored")

    async def sign_out(self) -> None:
        """Forget the refresh token and the cached widget state."""
        await self.token_store.remove(KEY_REFRESH_TOKEN)
        await self.navigation.clear()

    async def aclose(self) -> None:
        self.orchestrator.cancel_pending_retry()
        await self.http_client.aclose()

    async def __aenter__(self) -> "Application":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
