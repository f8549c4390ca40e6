"""Errors raised while building plan templates or seeding fixtures."""

from convo_eval.core.errors import ConvoEvalError


class TemplateBuildError(ConvoEvalError):
    """Raised when no plan template can be produced for the batch."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to build plan template: {reason}")


class PlanBankEmptyError(ConvoEvalError):
    """Raised when the template bank has no entry for the requested theme."""

    def __init__(self, theme_key: str | None) -> None:
        scope = f"theme_key={theme_key!r}" if theme_key else "any theme"
        super().__init__(f"Failed to pick a pre-generated plan: bank is empty for {scope}")
        self.theme_key = theme_key


class FixtureSeedError(ConvoEvalError):
    """Raised when the seeder cannot write a fixture row."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to seed fixtures: {reason}")
