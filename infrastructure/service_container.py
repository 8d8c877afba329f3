"""
Service container for dependency injection and initialization.

This module centralizes service creation and wiring so bot.py and the cogs
never build services themselves.

Usage:
    container = ServiceContainer(ServiceConfig.from_env())
    container.initialize()

    poller = container.match_poller
    coordinator = container.vote_coordinator
"""

import logging
from dataclasses import dataclass
from typing import Any

from infrastructure.faceit_gateway import (
    DEFAULT_CHAT_API_BASE,
    DEFAULT_DATA_API_BASE,
    FaceitGateway,
)
from services.chat_command_service import ChatCommandListener
from services.match_poller import MatchPoller
from services.match_registry import MatchRegistry
from services.player_link_service import PlayerLinkService
from services.vote_coordinator import VoteCoordinator
from utils.formatting import build_greeting_message

logger = logging.getLogger("faceit_bot.infrastructure.container")


@dataclass
class ServiceConfig:
    """Configuration for service initialization."""

    # FACEIT access
    hub_id: str = ""
    api_key: str | None = None
    chat_token: str | None = None
    bot_user_id: str | None = None
    data_api_base: str = DEFAULT_DATA_API_BASE
    chat_api_base: str = DEFAULT_CHAT_API_BASE

    # Gateway request policy
    request_timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_backoff_seconds: float = 1.0

    # Polling
    poll_interval_ms: int = 30000
    status_filter: str = "ongoing"
    match_limit: int = 50
    chat_commands_enabled: bool = True
    notify_channel_id: int | None = None

    # Voting and rating checks
    rehost_vote_threshold: int = 6
    cancel_vote_threshold: int = 6
    elo_diff_threshold: float = 70.0
    repeat_elo_notice: bool = False

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a config from the values parsed in config.py."""
        import config

        return cls(
            hub_id=config.FACEIT_HUB_ID or "",
            api_key=config.FACEIT_API_KEY,
            chat_token=config.FACEIT_CHAT_TOKEN,
            bot_user_id=config.FACEIT_BOT_USER_ID,
            data_api_base=config.FACEIT_DATA_API_BASE,
            chat_api_base=config.FACEIT_CHAT_API_BASE,
            request_timeout_seconds=config.FACEIT_REQUEST_TIMEOUT_SECONDS,
            max_retries=config.FACEIT_MAX_RETRIES,
            retry_backoff_seconds=config.FACEIT_RETRY_BACKOFF_SECONDS,
            poll_interval_ms=config.POLL_INTERVAL_MS,
            status_filter=config.HUB_MATCH_STATUS_FILTER,
            match_limit=config.HUB_MATCH_LIMIT,
            chat_commands_enabled=config.CHAT_COMMANDS_ENABLED,
            notify_channel_id=config.NOTIFY_CHANNEL_ID,
            rehost_vote_threshold=config.REHOST_VOTE_THRESHOLD,
            cancel_vote_threshold=config.CANCEL_VOTE_THRESHOLD,
            elo_diff_threshold=config.ELO_DIFF_THRESHOLD,
            repeat_elo_notice=config.REPEAT_ELO_NOTICE,
        )

    @property
    def help_text(self) -> str:
        return build_greeting_message(
            self.rehost_vote_threshold, self.cancel_vote_threshold, self.elo_diff_threshold
        )


class ServiceContainer:
    """
    Central container for all application services.

    Handles initialization order and dependency injection. The registry is
    created here and handed only to the poller, the vote coordinator and the
    chat listener.

    Example:
        container = ServiceContainer(config)
        container.initialize()
        container.expose_to_bot(bot)
    """

    def __init__(self, config: ServiceConfig | None = None, gateway=None):
        """
        Initialize the container with configuration.

        Args:
            config: Service configuration (uses defaults if None)
            gateway: Pre-built gateway (tests); a FaceitGateway is built otherwise
        """
        self.config = config or ServiceConfig()
        self._initialized = False
        self._gateway = gateway
        self._services: dict[str, Any] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Initialize all services in dependency order.

        This method is idempotent - calling it multiple times has no effect.
        """
        if self._initialized:
            logger.debug("ServiceContainer already initialized, skipping")
            return

        logger.info("Initializing ServiceContainer...")
        if not self.config.hub_id:
            logger.warning("No FACEIT hub id configured; polling will fail until one is set")

        self._init_gateway()
        self._init_match_services()

        self._initialized = True
        logger.info("ServiceContainer initialization complete")

    def _init_gateway(self) -> None:
        if self._gateway is None:
            self._gateway = FaceitGateway(
                api_key=self.config.api_key,
                chat_token=self.config.chat_token,
                data_api_base=self.config.data_api_base,
                chat_api_base=self.config.chat_api_base,
                timeout_seconds=self.config.request_timeout_seconds,
                max_retries=self.config.max_retries,
                backoff_seconds=self.config.retry_backoff_seconds,
            )
        self._services["gateway"] = self._gateway

    def _init_match_services(self) -> None:
        logger.debug("Initializing match services")

        registry = MatchRegistry()
        self._services["registry"] = registry

        coordinator = VoteCoordinator(
            registry,
            self._gateway,
            rehost_threshold=self.config.rehost_vote_threshold,
            cancel_threshold=self.config.cancel_vote_threshold,
        )
        self._services["vote_coordinator"] = coordinator

        poller = MatchPoller(
            self._gateway,
            registry,
            self.config.hub_id,
            status_filter=self.config.status_filter,
            match_limit=self.config.match_limit,
            elo_diff_threshold=self.config.elo_diff_threshold,
            repeat_elo_notice=self.config.repeat_elo_notice,
            greeting_text=self.config.help_text,
            rehost_threshold=self.config.rehost_vote_threshold,
            cancel_threshold=self.config.cancel_vote_threshold,
        )
        self._services["match_poller"] = poller

        self._services["chat_listener"] = ChatCommandListener(
            self._gateway,
            registry,
            coordinator,
            help_text=self.config.help_text,
            bot_user_id=self.config.bot_user_id,
        )

        self._services["player_link"] = PlayerLinkService(self._gateway)

    def _get(self, name: str):
        if not self._initialized:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._services[name]

    @property
    def gateway(self) -> FaceitGateway:
        return self._get("gateway")

    @property
    def vote_coordinator(self) -> VoteCoordinator:
        return self._get("vote_coordinator")

    @property
    def match_poller(self) -> MatchPoller:
        return self._get("match_poller")

    @property
    def chat_listener(self) -> ChatCommandListener:
        return self._get("chat_listener")

    @property
    def player_link_service(self) -> PlayerLinkService:
        return self._get("player_link")

    def expose_to_bot(self, bot) -> None:
        """
        Expose services to a Discord bot object so cogs can reach them as
        bot.<service_name>. The registry itself is not exposed.
        """
        bot.faceit_gateway = self.gateway
        bot.vote_coordinator = self.vote_coordinator
        bot.match_poller = self.match_poller
        bot.chat_listener = self.chat_listener
        bot.player_link_service = self.player_link_service
        bot.service_config = self.config
