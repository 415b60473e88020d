import logging
import sys

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, level=logging.INFO) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger


def log_sample_attempt(logger: logging.Logger, source_id: int, attempt: int,
                       candidate_id: str, outcome: str):
    """
    Logs a single attempt of the random candidate sampler.

    Args:
        logger: Logger instance to use
        source_id: Content source being sampled
        attempt: 1-based attempt number
        candidate_id: Candidate id drawn for this attempt
        outcome: Short outcome label ("cached", "ok", or a rejection reason)
    """
    logger.debug(f"Sample attempt {attempt} - Source: {source_id}, Candidate: {candidate_id}")
    logger.debug(f"  Outcome: {outcome}")


def log_transition(logger: logging.Logger, event: str, from_state: str,
                   to_state: str, episode_index: int, source_index: int):
    """
    Logs a playback session state transition.

    Args:
        logger: Logger instance to use
        event: Event that triggered the transition
        from_state: State before the transition
        to_state: State after the transition
        episode_index: Current episode index after the transition
        source_index: Current source index after the transition
    """
    logger.info(f"▶ {event}: {from_state} -> {to_state} (ep={episode_index}, src={source_index})")
