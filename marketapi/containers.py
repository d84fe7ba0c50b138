from dependency_injector import containers, providers

from marketapi.config import Settings
from marketapi.database.session import get_db
from marketapi.services.activity_service import ActivityService
from marketapi.services.customer_service import CustomerService
from marketapi.services.dashboard_service import DashboardService
from marketapi.services.product_service import ProductService
from marketapi.services.settlement_service import SettlementService
from marketapi.services.transaction_service import TransactionService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    activity_service = providers.Factory(
        ActivityService, db=repositories.get_db, settings=config.config
    )
    customer_service = providers.Factory(CustomerService, db=repositories.get_db)
    product_service = providers.Factory(
        ProductService, db=repositories.get_db, settings=config.config
    )
    settlement_service = providers.Factory(
        SettlementService, db=repositories.get_db, settings=config.config
    )
    transaction_service = providers.Factory(
        TransactionService, db=repositories.get_db, settings=config.config
    )
    dashboard_service = providers.Factory(
        DashboardService, db=repositories.get_db, settings=config.config
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
