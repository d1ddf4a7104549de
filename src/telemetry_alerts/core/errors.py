"""Exception hierarchy for the alerting pipeline."""


class TelemetryAlertsError(Exception):
    """Base class for errors raised by telemetry_alerts."""


class RuleNotFoundError(TelemetryAlertsError, KeyError):
    """Raised when a rule id does not exist."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class SchedulerStateError(TelemetryAlertsError, RuntimeError):
    """Raised on an invalid scheduler state transition."""


class SchedulerAlreadyRunningError(SchedulerStateError):
    def __init__(self) -> None:
        super().__init__("Scheduler is already running")


class SchedulerNotRunningError(SchedulerStateError):
    def __init__(self) -> None:
        super().__init__("Scheduler is not running")


class RuleEvaluationError(TelemetryAlertsError):
    """Raised when one or more rules failed during a full evaluation.

    Attributes:
        errors: The individual exceptions, in rule order.
    """

    def __init__(self, errors: list[Exception]) -> None:
        messages = ", ".join(str(e) for e in errors)
        super().__init__(f"Failed to evaluate some monitoring rules: {messages}")
        self.errors = errors


class InvalidPayloadError(TelemetryAlertsError, ValueError):
    """Raised when an inbound payload cannot be decoded."""
