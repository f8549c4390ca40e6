"""Endpoints of the platform hosting the agent under test and its collaborators."""

from pydantic import BaseModel, Field


class ServicesConfig(BaseModel, frozen=True):
    base_url: str = Field(min_length=1)
    anon_key: str = Field(min_length=1)
    service_role_key: str = Field(min_length=1)
    request_timeout_seconds: float = Field(default=90.0, gt=0)
    agent_path: str = "/functions/v1/process-message"
    simulator_path: str = "/functions/v1/simulate-user"
    plan_generator_path: str = "/functions/v1/generate-plan"
    judge_path: str = "/functions/v1/eval-judge"
    webhook_path: str = "/functions/v1/whatsapp-webhook"
