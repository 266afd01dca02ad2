import logging

LOG_FORMAT = "[%(asctime)s %(name)s] [%(levelname)s] %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging the way the export call sites expect."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("trimesh").setLevel(logging.WARNING)
