"""
Logging Configuration for DentalNEAT.

Loguru sinks for the library and CLI, plus a bridge that turns engine events
into log lines so long runs can be followed from a terminal or a log file.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from dentalneat.events import EventBus, EventType, NEATEvent


DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "100 MB",
    retention: str = "30 days",
    format_string: Optional[str] = None,
    serialize: bool = False,
) -> None:
    """
    Replace all loguru sinks with a stderr sink and an optional file sink.

    Args:
        log_level: Minimum level for both sinks
        log_file: Rotating log file (stderr only if None)
        rotation: When the log file rotates
        retention: How long rotated files are kept
        format_string: Overrides the default line format
        serialize: Emit JSON records instead of formatted lines
    """
    level = log_level.upper()
    line_format = format_string or ("{message}" if serialize else DEFAULT_FORMAT)

    logger.remove()
    # Records logged without a bound component still render
    logger.configure(extra={"component": "dentalneat"})

    logger.add(sys.stderr, level=level, format=line_format, colorize=not serialize, serialize=serialize)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(path),
            level=level,
            format=line_format,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
        )

    logger.debug("Logging configured", level=level, log_file=str(log_file) if log_file else None)


def get_logger(name: str):
    """Logger whose records carry ``name`` as their component."""
    return logger.bind(component=name)


class LogContext:
    """
    Attach key/value context to every record logged inside the block.

    Example:
        with LogContext(run="baseline", seed=42):
            await runner.run()
    """

    def __init__(self, **fields):
        self.fields = fields
        self._manager = None

    def __enter__(self):
        self._manager = logger.contextualize(**self.fields)
        self._manager.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._manager is not None:
            self._manager.__exit__(exc_type, exc_val, exc_tb)
            self._manager = None


# =============================================================================
# Engine Event Logging
# =============================================================================


class EngineEventLogger:
    """
    Logs engine events as they are published.

    Attach it to an engine's ``EventBus``; every event type is handled and
    logged at a level matching its importance. Evaluation failures are already
    logged by the engine, so they are only counted here.
    """

    def __init__(self, component: str = "evolution"):
        self.log = get_logger(component)
        self.evaluation_errors = 0
        self._bus: Optional[EventBus] = None
        self._handlers = {
            EventType.NEAT_STARTED: self._on_started,
            EventType.NEAT_STOPPED: self._on_stopped,
            EventType.GENERATION_COMPLETED: self._on_generation_completed,
            EventType.NEW_BEST_GENOME: self._on_new_best,
            EventType.EVALUATION_ERROR: self._on_evaluation_error,
        }

    def attach(self, bus: EventBus) -> "EngineEventLogger":
        for event_type, handler in self._handlers.items():
            bus.register_handler(event_type, handler)
        self._bus = bus
        return self

    def detach(self) -> None:
        if self._bus is None:
            return
        for event_type, handler in self._handlers.items():
            self._bus.unregister_handler(event_type, handler)
        self._bus = None

    def _on_started(self, event: NEATEvent) -> None:
        self.log.info(f"Evolution started at generation {event.data.get('generation', 0)}")

    def _on_stopped(self, event: NEATEvent) -> None:
        self.log.info(
            f"Evolution stopped after generation {event.data.get('generation', 0)}",
            evaluation_errors=self.evaluation_errors,
        )

    def _on_generation_completed(self, event: NEATEvent) -> None:
        data = event.data
        with LogContext(generation=data["generation"]):
            self.log.info(
                f"Generation {data['generation']}: "
                f"best={data['best_fitness']:.4f} avg={data['avg_fitness']:.4f} "
                f"species={data['species_count']}"
            )

    def _on_new_best(self, event: NEATEvent) -> None:
        genome = event.data["genome"]
        self.log.success(
            f"New best genome {genome.genome_id} ({genome.fitness:.4f})",
            generation=event.data["generation"],
            architecture=genome.architecture.summary,
        )

    def _on_evaluation_error(self, event: NEATEvent) -> None:
        self.evaluation_errors += 1


def log_error(message: str, exception: Optional[Exception] = None):
    """Log an error, with traceback when an exception is given."""
    if exception is None:
        logger.error(message)
    else:
        logger.opt(exception=exception).error(f"{message}: {exception}")
