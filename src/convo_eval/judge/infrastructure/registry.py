"""create_judge: maps JudgeConfig.type to the correct Judge implementation."""

import litellm

from convo_eval.config.domain.judge import JudgeConfig
from convo_eval.core.backoff import BackoffPolicy
from convo_eval.core.http import ServiceClient
from convo_eval.judge.domain.judge import Judge
from convo_eval.judge.domain.observer import JudgeObserver
from convo_eval.judge.infrastructure.errors import JudgeTypeNotSupportedError
from convo_eval.judge.infrastructure.http_judge import HttpJudge
from convo_eval.judge.infrastructure.litellm import LiteLLMJudge


def create_judge(
    config: JudgeConfig,
    retry: BackoffPolicy,
    client: ServiceClient,
    judge_path: str,
    observer: JudgeObserver,
) -> Judge:
    """Return the Judge for config.type.

    Raises:
        JudgeTypeNotSupportedError: if config.type is not a known judge type.
    """
    if config.type == "litellm":
        litellm.suppress_debug_info = True
        return LiteLLMJudge(config=config, retry=retry, observer=observer)
    if config.type == "http":
        return HttpJudge(client=client, path=judge_path, retry=retry, observer=observer)

    raise JudgeTypeNotSupportedError(judge_type=config.type)
