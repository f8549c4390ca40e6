"""SupabaseStore: PostgREST and GoTrue admin adapter for every store port.

Implements RunRegistry, IdentityProvider, FixtureStore and StateReader over a
ServiceClient authenticated with the service-role key.
"""

from typing import Any

import httpx
from pydantic import ValidationError

from convo_eval.conversation.domain.message import ChatMessage
from convo_eval.core.http import ServiceClient, ServiceResponse
from convo_eval.core.ids import make_nonce
from convo_eval.evaluation.domain.identity import EvalIdentity
from convo_eval.evaluation.domain.run import EvalRun
from convo_eval.storage.infrastructure.errors import StoreRequestError

REST = "/rest/v1"
ADMIN_USERS = "/auth/v1/admin/users"
IDENTITY_DISPLAY_NAME = "Eval Runner"
VERIFIER_ISSUES_EVENT = "verifier_issues"

_PROFILE_COLUMNS = ",".join(
    [
        "id",
        "full_name",
        "email",
        "onboarding_completed",
        "phone_number",
        "phone_invalid",
        "phone_verified_at",
        "trial_end",
        "whatsapp_opted_in",
        "whatsapp_opted_out_at",
        "whatsapp_optout_reason",
        "whatsapp_optout_confirmed_at",
        "whatsapp_bilan_opted_in",
        "whatsapp_optin_sent_at",
        "whatsapp_last_inbound_at",
        "whatsapp_last_outbound_at",
        "whatsapp_state",
        "whatsapp_state_updated_at",
    ]
)
_ACTION_COLUMNS = (
    "id,title,description,status,tracking_type,time_of_day,"
    "target_reps,current_reps,last_performed_at,created_at"
)
_FRAMEWORK_COLUMNS = (
    "id,title,status,tracking_type,type,target_reps,current_reps,last_performed_at,created_at"
)
_PLAN_COLUMNS = (
    "id,created_at,status,title,deep_why,content,submission_id,goal_id,"
    "current_phase,progress_percentage"
)
_LIVE_STATUSES = "in.(active,pending)"


class SupabaseStore:
    """Satisfies RunRegistry, IdentityProvider, FixtureStore and StateReader structurally."""

    def __init__(self, client: ServiceClient) -> None:
        self._client = client

    # ------------------------------------------------------------------
    # RunRegistry
    # ------------------------------------------------------------------

    async def find_by_key(self, request_id: str) -> EvalRun | None:
        rows = await self._select(
            "conversation_eval_runs",
            {"select": "*", "config->>request_id": f"eq.{request_id}", "limit": "1"},
            operation="look up eval run",
        )
        if not rows:
            return None
        try:
            return EvalRun.model_validate(rows[0])
        except ValidationError as exc:
            raise StoreRequestError("decode eval run", 200, str(exc)) from exc

    async def upsert(self, run: EvalRun) -> None:
        await self._request(
            "save eval run",
            "POST",
            f"{REST}/conversation_eval_runs",
            payload=run.model_dump(mode="json"),
            params={"on_conflict": "id"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    async def create(self) -> EvalIdentity:
        nonce = make_nonce()
        email = f"run-evals+{nonce}@example.com"
        response = await self._request(
            "create test user",
            "POST",
            ADMIN_USERS,
            payload={
                "email": email,
                "password": f"T{nonce}!123456",
                "email_confirm": True,
                "user_metadata": {"full_name": IDENTITY_DISPLAY_NAME},
            },
        )
        body = response.body if isinstance(response.body, dict) else {}
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        user_id = str(user.get("id") or "")
        if not user_id:
            raise StoreRequestError("create test user", response.status, "missing user id")
        return EvalIdentity(user_id=user_id, email=email)

    async def delete(self, user_id: str) -> None:
        await self._request("delete test user", "DELETE", f"{ADMIN_USERS}/{user_id}")

    # ------------------------------------------------------------------
    # FixtureStore
    # ------------------------------------------------------------------

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> None:
        await self._request(
            "update profile",
            "PATCH",
            f"{REST}/profiles",
            payload=fields,
            params={"id": f"eq.{user_id}"},
            headers={"Prefer": "return=minimal"},
        )

    async def insert_goal(self, row: dict[str, Any]) -> str:
        return str((await self._insert("user_goals", [row], "id"))[0]["id"])

    async def insert_plan(self, row: dict[str, Any]) -> str:
        return str((await self._insert("user_plans", [row], "id"))[0]["id"])

    async def insert_actions(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return await self._insert("user_actions", rows, "*")

    async def insert_frameworks(self, rows: list[dict[str, Any]]) -> None:
        await self._insert("user_framework_tracking", rows, None)

    async def insert_vital(self, row: dict[str, Any]) -> None:
        await self._insert("user_vital_signs", [row], None)

    async def insert_action_entries(self, rows: list[dict[str, Any]]) -> None:
        await self._insert("user_action_entries", rows, None)

    async def upsert_chat_state(self, row: dict[str, Any]) -> None:
        await self._request(
            "save chat state",
            "POST",
            f"{REST}/user_chat_states",
            payload=row,
            params={"on_conflict": "user_id,scope"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def list_actions(self, user_id: str) -> list[dict[str, Any]]:
        return await self._select(
            "user_actions",
            {
                "select": _ACTION_COLUMNS,
                "user_id": f"eq.{user_id}",
                "status": _LIVE_STATUSES,
                "order": "created_at.asc",
                "limit": "50",
            },
            operation="list actions",
        )

    async def has_active_plan(self, user_id: str) -> bool:
        rows = await self._select(
            "user_plans",
            {"select": "id", "user_id": f"eq.{user_id}", "status": "eq.active", "limit": "1"},
            operation="look up active plan",
        )
        return bool(rows)

    # ------------------------------------------------------------------
    # StateReader
    # ------------------------------------------------------------------

    async def chat_state(self, user_id: str, scope: str) -> dict[str, Any] | None:
        rows = await self._select(
            "user_chat_states",
            {"select": "*", "user_id": f"eq.{user_id}", "scope": f"eq.{scope}", "limit": "1"},
            operation="read chat state",
        )
        return rows[0] if rows else None

    async def messages(
        self, user_id: str, scope: str, limit: int = 400
    ) -> list[ChatMessage]:
        rows = await self._select(
            "chat_messages",
            {
                "select": "role,content,created_at,agent_used",
                "user_id": f"eq.{user_id}",
                "scope": f"eq.{scope}",
                "order": "created_at.asc",
                "limit": str(limit),
            },
            operation="read chat messages",
        )
        return [
            ChatMessage(
                role=row["role"],
                content=str(row.get("content") or ""),
                agent_used=row.get("agent_used") if row["role"] == "assistant" else None,
            )
            for row in rows
            if row.get("role") in ("user", "assistant")
        ]

    async def profile(self, user_id: str) -> dict[str, Any] | None:
        rows = await self._select(
            "profiles",
            {"select": _PROFILE_COLUMNS, "id": f"eq.{user_id}", "limit": "1"},
            operation="read profile",
        )
        return rows[0] if rows else None

    async def plan_snapshot(self, user_id: str) -> dict[str, Any] | None:
        plans = await self._select(
            "user_plans",
            {
                "select": _PLAN_COLUMNS,
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
                "limit": "1",
            },
            operation="read plan",
        )
        actions = await self.list_actions(user_id)
        frameworks = await self._select(
            "user_framework_tracking",
            {
                "select": _FRAMEWORK_COLUMNS,
                "user_id": f"eq.{user_id}",
                "status": _LIVE_STATUSES,
                "order": "created_at.asc",
                "limit": "50",
            },
            operation="read frameworks",
        )
        # Frameworks are also listed among actions, tagged, the way the agent sees them.
        tagged = [
            {
                "id": f.get("id"),
                "title": f.get("title"),
                "description": "",
                "status": f.get("status"),
                "tracking_type": f.get("tracking_type"),
                "time_of_day": None,
                "target_reps": f.get("target_reps"),
                "current_reps": f.get("current_reps"),
                "last_performed_at": f.get("last_performed_at"),
                "created_at": f.get("created_at"),
                "_kind": "framework",
                "framework_type": f.get("type"),
            }
            for f in frameworks
        ]
        return {
            "plan": plans[0] if plans else None,
            "actions": [*actions, *tagged],
            "frameworks": frameworks,
        }

    async def logged_issues(self, eval_run_id: str) -> list[str]:
        rows = await self._select(
            "conversation_eval_events",
            {
                "select": "event,payload",
                "eval_run_id": f"eq.{eval_run_id}",
                "event": f"eq.{VERIFIER_ISSUES_EVENT}",
                "order": "created_at.asc",
                "limit": "5000",
            },
            operation="read eval events",
        )
        issues: list[str] = []
        for row in rows:
            payload = row.get("payload")
            if isinstance(payload, dict) and isinstance(payload.get("issues"), list):
                issues += [str(issue) for issue in payload["issues"]]
        return issues

    # ------------------------------------------------------------------
    # REST helpers
    # ------------------------------------------------------------------

    async def _request(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> ServiceResponse:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreRequestError(operation, 0, str(exc) or type(exc).__name__) from exc
        _check(response, operation)
        return response

    async def _select(
        self, table: str, params: dict[str, str], operation: str
    ) -> list[dict[str, Any]]:
        response = await self._request(operation, "GET", f"{REST}/{table}", params=params)
        return response.body if isinstance(response.body, list) else []

    async def _insert(
        self, table: str, rows: list[dict[str, Any]], returning: str | None
    ) -> list[dict[str, Any]]:
        if not rows:
            return []
        params = {"select": returning} if returning else None
        prefer = "return=representation" if returning else "return=minimal"
        response = await self._request(
            f"insert into {table}",
            "POST",
            f"{REST}/{table}",
            payload=rows,
            params=params,
            headers={"Prefer": prefer},
        )
        if not returning:
            return []
        body = response.body if isinstance(response.body, list) else []
        if len(body) < len(rows):
            raise StoreRequestError(
                f"insert into {table}", response.status, "fewer rows returned than inserted"
            )
        return body


def _check(response: ServiceResponse, operation: str) -> None:
    if response.ok:
        return
    body = response.body
    if isinstance(body, dict):
        detail = str(body.get("message") or body.get("msg") or body.get("error") or body)
    else:
        detail = str(body)
    raise StoreRequestError(operation, response.status, detail)
