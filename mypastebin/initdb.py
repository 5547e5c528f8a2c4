from .config import check_config, config
from .database import Database
from .log import get_logger

LOGGER = get_logger(__name__)


def main():
    check_config(config)
    LOGGER.info("Creating database objects")
    Database().setup_database_objects()
    LOGGER.info("Finished creating database objects")


if __name__ == "__main__":
    main()
