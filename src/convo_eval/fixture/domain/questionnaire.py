"""Synthetic onboarding questionnaire used as input to plan generation."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from convo_eval.core.sampling import pick_many_unique, pick_one


class Axis(BaseModel, frozen=True):
    id: str
    title: str
    theme: str
    problems: tuple[str, ...]


AXIS_BANK: tuple[Axis, ...] = (
    Axis(
        id="sleep",
        title="Sommeil",
        theme="Énergie",
        problems=(
            "Difficulté d'endormissement",
            "Réveils nocturnes",
            "Scroll tard le soir",
            "Ruminations",
        ),
    ),
    Axis(
        id="stress",
        title="Gestion du stress",
        theme="Émotions",
        problems=("Anxiété", "Irritabilité", "Charge mentale", "Rumination"),
    ),
    Axis(
        id="focus",
        title="Focus & Discipline",
        theme="Productivité",
        problems=("Procrastination", "Distractions", "Manque de clarté", "Désorganisation"),
    ),
    Axis(
        id="health",
        title="Santé & Mouvement",
        theme="Vitalité",
        problems=(
            "Sédentarité",
            "Manque d'activité",
            "Manque d'énergie",
            "Douleurs / raideurs",
        ),
    ),
)

_BLOCKERS = (
    "Je manque de constance, je décroche quand je suis fatigué.",
    "Je suis souvent débordé, j'oublie et je remets à plus tard.",
    "Je me sens vite submergé et je perds le fil.",
)
_CONTEXTS = (
    "Rythme de vie chargé, beaucoup de sollicitations, peu de temps pour moi.",
    "Je bosse sur écran, je finis tard et je dors mal.",
    "J'ai des journées irrégulières, je suis fatigué et je compense avec le téléphone.",
)


class Questionnaire(BaseModel, frozen=True):
    inputs: dict[str, Any]
    current_axis: dict[str, Any]
    answers: dict[str, Any]
    user_profile: dict[str, Any]

    def to_payload(self) -> dict[str, Any]:
        """Request body for the plan generation endpoint."""
        return {
            "force_real_generation": True,
            "mode": "standard",
            "inputs": self.inputs,
            "currentAxis": self.current_axis,
            "answers": self.answers,
            "userProfile": self.user_profile,
        }


def build_questionnaire(now: datetime | None = None) -> Questionnaire:
    axis = pick_one(AXIS_BANK)
    problems = pick_many_unique(axis.problems, 2)
    created_at = (now or datetime.now(UTC)).isoformat()
    current_axis = {
        "id": axis.id,
        "title": axis.title,
        "theme": axis.theme,
        "problems": problems,
    }
    return Questionnaire(
        inputs={
            "why": (
                f"Je veux améliorer {axis.title.lower()} pour retrouver de l'énergie "
                "et être plus stable au quotidien."
            ),
            "blockers": pick_one(_BLOCKERS),
            "context": pick_one(_CONTEXTS),
            "pacing": pick_one(("fast", "balanced", "slow")),
        },
        current_axis=current_axis,
        answers={
            "meta": {
                "source": "convo-eval",
                "questionnaire_type": "onboarding",
                "axis_id": axis.id,
                "created_at": created_at,
            },
            "axis": current_axis,
            "lifestyle": {
                "sleep_quality": pick_one(("mauvaise", "moyenne", "bonne")),
                "stress_level": pick_one(("élevé", "moyen", "faible")),
                "activity_level": pick_one(("faible", "moyen", "élevé")),
            },
        },
        user_profile={
            "birth_date": pick_one(("1992-03-11", "1988-09-22", "1996-01-05")),
            "gender": pick_one(("male", "female", "other")),
        },
    )
