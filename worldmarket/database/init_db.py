"""Create the market tables for the configured DATABASE_URL."""

from worldmarket.config import get_config
from worldmarket.database.models import Base
from worldmarket.database.operations import get_engine, init_database
from worldmarket.utils import configure_logging


def main() -> None:
    config = get_config()
    logger = configure_logging(config)

    logger.info(f"Initializing market database at {config.database_url}...")
    init_database(get_engine(config.database_url))
    logger.info(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    main()
