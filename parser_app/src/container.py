"""
Wiring for the PARSER APP: one place that builds the engine, repositories,
credential provider, completion client and service from settings.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from shared.database import (
    NutritionRepository,
    WorkoutRepository,
    build_engine,
    build_session_factory,
    create_all_tables,
)

from parser_app.config.settings import ParserAppSettings, settings as default_settings
from parser_app.agents.credentials import (
    CredentialProvider,
    SettingsCredentialProvider,
    StaticCredentialProvider,
)
from parser_app.agents.llm_utils import CompletionClient
from parser_app.agents.parser_service import FitnessLogService


logger = logging.getLogger(__name__)


@dataclass
class Components:
    settings: ParserAppSettings
    engine: Engine
    session_factory: sessionmaker
    workouts: WorkoutRepository
    meals: NutritionRepository
    credentials: CredentialProvider
    completion: CompletionClient
    service: FitnessLogService


def build_components(
    app_settings: Optional[ParserAppSettings] = None,
    database_url: Optional[str] = None,
    api_key: Optional[str] = None,
    completion: Optional[CompletionClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
    create_tables: bool = True,
) -> Components:
    """Build every collaborator explicitly; nothing is shared process-wide.

    ``api_key`` overrides the configured key; ``completion`` replaces the
    OpenAI-backed client (tests pass a fake).
    """
    app_settings = app_settings or default_settings

    engine = build_engine(database_url or app_settings.database_url, echo=app_settings.debug)
    if create_tables:
        create_all_tables(engine)
    session_factory = build_session_factory(engine)

    if api_key is not None:
        credentials: CredentialProvider = StaticCredentialProvider(api_key)
    else:
        credentials = SettingsCredentialProvider(app_settings)

    completion = completion or CompletionClient(
        credentials,
        model=app_settings.openai_model,
        timeout=app_settings.http_timeout_seconds,
    )
    service = FitnessLogService(
        completion,
        credentials,
        local_zone=app_settings.local_timezone(),
        clock=clock,
    )
    logger.debug(f"🔧 Components ready (db={engine.url.render_as_string(hide_password=True)})")

    return Components(
        settings=app_settings,
        engine=engine,
        session_factory=session_factory,
        workouts=WorkoutRepository(session_factory),
        meals=NutritionRepository(session_factory),
        credentials=credentials,
        completion=completion,
        service=service,
    )
