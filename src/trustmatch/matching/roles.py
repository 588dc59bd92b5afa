"""Per-role defaults for preprocessing and similarity algorithm."""

from __future__ import annotations

from dataclasses import dataclass

from trustmatch.matching.models import FieldRole
from trustmatch.preprocess import PreprocessingStep as Step
from trustmatch.similarity.models import SimilarityAlgorithm as Algo

__all__ = ["RoleDefaults", "ROLE_DEFAULTS", "defaults_for"]


@dataclass(frozen=True, slots=True)
class RoleDefaults:
    """Defaults applied when a rule leaves preprocessing or similarity unset."""

    preprocessing: tuple[Step, ...]
    algorithm: Algo


_NAME_STEPS = (Step.LOWERCASE, Step.NORMALIZE_UMLAUTS, Step.REMOVE_PUNCTUATION, Step.TRIM)

ROLE_DEFAULTS: dict[FieldRole, RoleDefaults] = {
    FieldRole.COMPANY_NAME: RoleDefaults(
        (Step.LOWERCASE, Step.REMOVE_LEGAL_FORMS, *_NAME_STEPS[1:]),
        Algo.JARO_WINKLER,
    ),
    FieldRole.PERSON_NAME: RoleDefaults(_NAME_STEPS, Algo.JARO_WINKLER),
    FieldRole.EMAIL: RoleDefaults((Step.LOWERCASE, Step.TRIM), Algo.LEVENSHTEIN),
    FieldRole.PHONE: RoleDefaults((Step.NORMALIZE_PHONE,), Algo.LEVENSHTEIN),
    FieldRole.ADDRESS: RoleDefaults(_NAME_STEPS, Algo.DICE_SORENSEN),
    FieldRole.IDENTIFIER: RoleDefaults((Step.NORMALIZE_VAT,), Algo.LEVENSHTEIN),
    FieldRole.NUMERIC: RoleDefaults((Step.TRIM,), Algo.LEVENSHTEIN),
    FieldRole.DATE: RoleDefaults((Step.TRIM,), Algo.LEVENSHTEIN),
    FieldRole.FREE_TEXT: RoleDefaults((Step.LOWERCASE, Step.TRIM), Algo.JACCARD),
}


def defaults_for(role: FieldRole | str) -> RoleDefaults:
    """Return the defaults of *role*; free text for unknown roles."""
    fallback = ROLE_DEFAULTS[FieldRole.FREE_TEXT]
    return ROLE_DEFAULTS.get(role, fallback)  # type: ignore[call-overload]
