from dependency_injector import containers, providers

from crudcore.core.settings import settings as app_settings
from crudcore.repositories import BaseRepository
from crudcore.services import BaseService
from crudcore.storage.database import build_engine, build_session_factory


class CoreContainer(containers.DeclarativeContainer):
    """Store handle wiring: override `settings` (or `engine`) per application or test."""

    settings = providers.Object(app_settings)

    engine = providers.Singleton(
        build_engine,
        settings.provided.DATABASE_URL,
        echo=settings.provided.DB_ECHO,
    )
    session_factory = providers.Singleton(build_session_factory, engine=engine)

    # container.repository(Customer); container.service(repo, CustomerDTO)
    repository = providers.Factory(BaseRepository)
    service = providers.Factory(BaseService)
