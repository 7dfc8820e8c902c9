import logging

from app.middleware.correlation_id import CorrelationIdFilter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Root logging for CLI jobs and the scheduler worker."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.DEBUG if verbose else logging.WARNING)
