from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from core.config_loader import AppConfig
from core.scorer import Rubric, ScoringService, load_rubric
from core.storage import ArtifactStore, create_artifact_store
from core.workflow import WorkflowEngine
from notification.message_builder import NotificationMessageBuilder
from notification.service import NotificationGateway


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Built once per process. The rubric is loaded and validated here, so a
    bad rubric stops the process before any submission is accepted.
    """
    config: AppConfig
    rubric: Rubric
    scorer: ScoringService
    store: ArtifactStore
    gateway: NotificationGateway
    engine: WorkflowEngine

    @classmethod
    def build(
        cls,
        config: AppConfig,
        session_factory: Optional[sessionmaker] = None
    ) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            session_factory: Session factory for workflow persistence
                (defaults to the process-wide one from DATABASE_URL)

        Raises:
            ConfigurationError: If the rubric or storage settings are invalid
        """
        if session_factory is None:
            from database.database import configure
            session_factory = configure(config.database.url)

        rubric = load_rubric(config.rubric_file)
        scorer = ScoringService(rubric)
        store = create_artifact_store(config.storage)
        gateway = cls._build_gateway(config)
        messages = NotificationMessageBuilder(
            public_base_url=config.web.public_base_url,
            link_expiry_seconds=config.storage.presign_expiry_seconds
        )

        engine = WorkflowEngine(
            session_factory=session_factory,
            config=config,
            scorer=scorer,
            store=store,
            gateway=gateway,
            messages=messages
        )

        return cls(
            config=config,
            rubric=rubric,
            scorer=scorer,
            store=store,
            gateway=gateway,
            engine=engine
        )

    @staticmethod
    def _build_gateway(config: AppConfig) -> NotificationGateway:
        notification_config = config.notifications
        return NotificationGateway(
            channel_type=notification_config.channel,
            use_async_queue=notification_config.use_async_queue,
            redis_url=notification_config.redis_url
        )
