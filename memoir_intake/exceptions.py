"""
Custom exceptions for memoir-intake with helpful error messages.
"""


class MemoirIntakeError(Exception):
    """Base exception for memoir-intake errors."""

    def __init__(self, message: str, suggestion: str = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self):
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class WorkspaceError(MemoirIntakeError):
    """Errors related to workspace management."""

    pass


class WorkspaceNotFoundError(WorkspaceError):
    """Workspace not found or not initialized."""

    def __init__(self, path: str = None):
        message = "Not in a memoir-intake workspace."
        if path:
            message = f"No memoir-intake workspace found at: {path}"

        suggestion = (
            "Initialize a new workspace with:\n"
            "  memoir-intake init <workspace-dir>\n\n"
            "Or navigate to an existing workspace directory."
        )
        super().__init__(message, suggestion)


class ConfigurationError(MemoirIntakeError):
    """Configuration file errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Configuration file is invalid."""

    def __init__(self, error_details: str):
        message = f"Invalid configuration file: {error_details}"

        suggestion = (
            "Fix the memoir-intake.yaml file.\n"
            "You can regenerate the default configuration:\n"
            "  mv memoir-intake.yaml memoir-intake.yaml.backup\n"
            "  memoir-intake init .\n\n"
            "Then merge your settings back from the backup."
        )
        super().__init__(message, suggestion)


class OnboardingError(MemoirIntakeError):
    """Errors raised or returned by the onboarding wizard."""

    pass


class StageViolation(OnboardingError):
    """An onboarding operation was invoked in an incompatible stage."""

    def __init__(self, operation: str, stage: str, allowed: tuple[str, ...] = ()):
        self.operation = operation
        self.stage = stage
        self.allowed = tuple(allowed)

        if self.allowed:
            expected = ", ".join(self.allowed)
            message = f"'{operation}' is not allowed in stage '{stage}' (expected: {expected})"
        else:
            message = f"'{operation}' is not allowed in stage '{stage}'"

        suggestion = "Reload the current draft and retry from its current stage."
        super().__init__(message, suggestion)


class ShapeValidationError(OnboardingError):
    """An answer payload does not match the shape its step or field declares."""

    def __init__(self, field_id: str, detail: str):
        self.field_id = field_id
        self.detail = detail
        super().__init__(f"Invalid answer for '{field_id}': {detail}")


class UnknownEntryAnswerError(OnboardingError):
    """Entry answer identifier is not one of the fixed entry options."""

    def __init__(self, answer_id: str, known: list[str] = None):
        self.answer_id = answer_id
        message = f"Unknown entry answer: {answer_id}"
        suggestion = None
        if known:
            suggestion = "Entry answer must be one of:\n  - " + "\n  - ".join(known)
        super().__init__(message, suggestion)


class UnknownStepError(OnboardingError):
    """Step identifier does not belong to the given path."""

    def __init__(self, path: str, step_id: str):
        self.path = path
        self.step_id = step_id
        super().__init__(f"Step '{step_id}' does not exist on path {path}")


class RegistrationValidationError(OnboardingError):
    """Registration payload failed validation."""

    def __init__(self, field_id: str, detail: str):
        self.field_id = field_id
        self.detail = detail
        super().__init__(f"Invalid registration field '{field_id}': {detail}")


class DraftStorageError(OnboardingError):
    """Draft could not be read from or written to the workspace."""

    pass


class TopicError(MemoirIntakeError):
    """Errors related to topic classification and routing."""

    pass


class UnknownTopicError(TopicError):
    """Topic name is not one of the seven known topics."""

    def __init__(self, topic: str, known: list[str] = None):
        self.topic = topic
        message = f"Unknown topic: {topic}"
        suggestion = None
        if known:
            suggestion = "Topic must be one of:\n  - " + "\n  - ".join(known)
        super().__init__(message, suggestion)


class MigrationError(MemoirIntakeError):
    """Errors raised by the profile extraction migration."""

    pass


class MigrationRecordError(MigrationError):
    """Failure to parse, merge or delete the records of one user."""

    def __init__(self, user_id: str, detail: str):
        self.user_id = user_id
        self.detail = detail
        super().__init__(f"User {user_id}: {detail}")


class MigrationFatalError(MigrationError):
    """Source records could not be read at all; the run is aborted."""

    def __init__(self, detail: str):
        message = f"Failed to load source records: {detail}"
        suggestion = (
            "Check that the records file exists and is readable:\n"
            "  memoir-intake.yaml -> storage.records_file\n\n"
            "Re-running the migration afterwards is safe."
        )
        super().__init__(message, suggestion)


class RecordStoreError(MemoirIntakeError):
    """Transient failure of a record-store read or write."""

    pass


class RetryableError(MemoirIntakeError):
    """Error that was retried until the attempts ran out."""

    def __init__(self, original_error: Exception, attempt: int, max_attempts: int):
        self.original_error = original_error
        self.attempt = attempt
        self.max_attempts = max_attempts

        message = f"Operation failed (attempt {attempt}/{max_attempts}): " f"{str(original_error)}"
        super().__init__(message)


def format_error_for_cli(error: Exception) -> str:
    """
    Format an exception for CLI display with helpful information.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, MemoirIntakeError):
        output = f"[red]Error:[/red] {error.message}"
        if error.suggestion:
            output += f"\n\n[yellow]{error.suggestion}[/yellow]"
        return output
    else:
        return f"[red]Error:[/red] {str(error)}"
