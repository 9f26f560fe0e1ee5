from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from core.config_loader import AppConfig, load_config
from core.interfaces import MatchNotifier
from core.lifecycle.manager import MatchLifecycleManager
from core.matcher.selector import CandidateSelector
from core.matching_service import MatchingService
from core.rematch.orchestrator import RematchOrchestrator
from core.tasks import TaskDispatcher, build_dispatcher
from database.database import build_engine, build_session_factory
from database.uow import UnitOfWorkFactory, uow_factory


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    This eliminates duplicate wiring code and provides a single source
    of truth for service instantiation. DB access is obtained through
    the unit-of-work factory inside each operation.
    """
    config: AppConfig
    engine: Engine
    session_factory: sessionmaker
    uow_factory: UnitOfWorkFactory
    dispatcher: TaskDispatcher
    selector: CandidateSelector
    lifecycle: MatchLifecycleManager
    orchestrator: RematchOrchestrator
    service: MatchingService
    notifier: Optional[MatchNotifier] = None

    @classmethod
    def build(
        cls,
        config: AppConfig,
        engine: Optional[Engine] = None,
        dispatcher: Optional[TaskDispatcher] = None,
        notifier: Optional[MatchNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            engine: Engine to bind sessions to (defaults to config.database.url)
            dispatcher: Background task dispatcher (defaults to config.tasks.backend)
            notifier: Notifier override (defaults to NotificationService when enabled)
            clock: Source of "now" for expiry and cooldown (defaults to UTC wall clock)

        Returns:
            Fully wired AppContext with every background task registered
        """
        if engine is None:
            engine = build_engine(config.database.url, echo=config.database.echo)
        session_factory = build_session_factory(engine)
        uow = uow_factory(session_factory)

        if dispatcher is None:
            dispatcher = build_dispatcher(
                config.tasks.backend,
                redis_url=config.tasks.redis_url,
                queue_name=config.tasks.queue_name
            )

        if notifier is None and config.notifications.enabled:
            notifier = cls._build_notification_service(config)

        selector = CandidateSelector(config.matching, clock=clock)
        lifecycle = MatchLifecycleManager(
            uow_factory=uow,
            dispatcher=dispatcher,
            notifier=notifier,
            config=config.matching,
            clock=clock
        )
        orchestrator = RematchOrchestrator(
            uow_factory=uow,
            selector=selector,
            lifecycle=lifecycle,
            dispatcher=dispatcher,
            config=config.matching
        )
        lifecycle.register_tasks(dispatcher)
        orchestrator.register_tasks(dispatcher)

        service = MatchingService(
            uow_factory=uow,
            lifecycle=lifecycle,
            orchestrator=orchestrator,
            admin_user_ids=config.web.admin_user_ids
        )

        return cls(
            config=config,
            engine=engine,
            session_factory=session_factory,
            uow_factory=uow,
            dispatcher=dispatcher,
            selector=selector,
            lifecycle=lifecycle,
            orchestrator=orchestrator,
            service=service,
            notifier=notifier
        )

    @staticmethod
    def _build_notification_service(config: AppConfig) -> MatchNotifier:
        """Build the notification service from the notifications section."""
        from notification.service import NotificationService

        notification_config = config.notifications
        return NotificationService(
            channel_type=notification_config.channel,
            redis_url=notification_config.redis_url,
            base_url=notification_config.base_url,
            use_async_queue=notification_config.use_async_queue,
            from_email=notification_config.from_email,
            from_name=notification_config.from_name,
            webhook_url=notification_config.webhook_url,
            expiry_days=config.matching.expiry_days
        )


@lru_cache(maxsize=1)
def get_worker_context() -> AppContext:
    """Context used inside rq workers to resolve tasks by name."""
    return AppContext.build(load_config())
