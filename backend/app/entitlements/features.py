"""Feature set representations and the vocabulary used to query them.

Plan rows store features in one of two shapes: a mapping of feature key to
boolean, or a legacy list of free-text capability phrases. Both are parsed
into a :data:`FeatureSet` variant exposing the same ``grants`` query.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple, Union

FEATURE_VOCABULARY_VERSION = 1

_BOOLEAN_SYNONYMS: Mapping[str, Tuple[str, ...]] = {
    # Advanced reporting implies the basic report capabilities.
    "advancedReports": ("advancedReports", "analytics", "reportsAdvanced"),
    "basicReports": ("basicReports", "reports", "simpleReports", "advancedReports", "analytics"),
    "analytics": ("analytics", "advancedReports"),
    "reports": ("reports", "basicReports", "advancedReports"),
    "batches": ("batches", "inventory", "advancedInventory"),
    "recipes": ("recipes", "simpleRecipes", "recipeManagement"),
    "inventory": ("inventory", "advancedInventory"),
    "qrScanning": ("qrScanning", "qr", "qr_code", "qrCode"),
    "schedules": ("schedules", "schedule", "calendar"),
}

_LEGACY_PHRASES: Mapping[str, Tuple[str, ...]] = {
    "analytics": (
        "Advanced report and analytics",
        "Basic report",
        "Advance Report & Analytics",
    ),
    "basicReports": (
        "Basic report",
        "Advanced report and analytics",
        "Basic Report",
        "Advance Report & Analytics",
        "Basic Reports",
    ),
    "advancedReports": (
        "Advanced report and analytics",
        "Advance Report & Analytics",
    ),
    "batches": (
        "Advanced inventory management",
        "Simple recipe management",
        "Advance Inventory Management",
    ),
    "recipes": ("Recipe versioning & scaling", "Simple recipe management"),
    "inventory": (
        "Advanced inventory management",
        "Simple recipe management",
        "Advance Inventory Management",
    ),
    "qrScanning": ("QR Code scanning",),
    "schedules": ("Schedule & Calendar", "Schedules & Calendar"),
}


@dataclass(frozen=True)
class FeatureVocabulary:
    """Versioned lookup tables translating canonical keys to stored forms."""

    version: int
    boolean_synonyms: Mapping[str, Tuple[str, ...]]
    legacy_phrases: Mapping[str, Tuple[str, ...]]

    def keys_for(self, feature_key: str) -> Tuple[str, ...]:
        return self.boolean_synonyms.get(feature_key) or (feature_key,)

    def phrases_for(self, feature_key: str) -> Tuple[str, ...]:
        return self.legacy_phrases.get(feature_key) or (feature_key,)


DEFAULT_VOCABULARY = FeatureVocabulary(
    version=FEATURE_VOCABULARY_VERSION,
    boolean_synonyms=MappingProxyType(dict(_BOOLEAN_SYNONYMS)),
    legacy_phrases=MappingProxyType(dict(_LEGACY_PHRASES)),
)


def phrases_match(plan_phrase: str, target_phrase: str) -> bool:
    """Case-insensitive two-way containment between two phrases."""

    plan = plan_phrase.strip().lower()
    target = target_phrase.strip().lower()
    if not plan or not target:
        return False
    return target in plan or plan in target


@dataclass(frozen=True)
class BooleanFeatures:
    """Feature map of key to enabled flag."""

    flags: Mapping[str, bool] = field(default_factory=dict)

    def grants(self, feature_key: str, vocabulary: FeatureVocabulary = DEFAULT_VOCABULARY) -> bool:
        return any(bool(self.flags.get(key)) for key in vocabulary.keys_for(feature_key))

    def is_empty(self) -> bool:
        return not any(self.flags.values())

    def to_payload(self) -> dict:
        return dict(self.flags)


@dataclass(frozen=True)
class LegacyFeatures:
    """Free-text capability phrases as entered on older plan rows."""

    phrases: Tuple[str, ...] = ()

    def grants(self, feature_key: str, vocabulary: FeatureVocabulary = DEFAULT_VOCABULARY) -> bool:
        return any(
            phrases_match(plan_phrase, target)
            for target in vocabulary.phrases_for(feature_key)
            for plan_phrase in self.phrases
        )

    def is_empty(self) -> bool:
        return not self.phrases

    def to_payload(self) -> list:
        return list(self.phrases)


FeatureSet = Union[BooleanFeatures, LegacyFeatures]

EMPTY_FEATURES: FeatureSet = LegacyFeatures()


def _legacy_from_iterable(values: Iterable[object]) -> LegacyFeatures:
    return LegacyFeatures(phrases=tuple(value for value in values if isinstance(value, str)))


def parse_feature_set(raw: object) -> FeatureSet:
    """Normalize a stored feature payload into a :data:`FeatureSet`.

    Anything that is neither a mapping nor a sequence of strings becomes an
    empty legacy list, which grants nothing.
    """

    if isinstance(raw, (BooleanFeatures, LegacyFeatures)):
        return raw
    if isinstance(raw, Mapping):
        return BooleanFeatures(
            flags=MappingProxyType({str(key): bool(value) for key, value in raw.items()})
        )
    if isinstance(raw, (list, tuple, set, frozenset)):
        return _legacy_from_iterable(raw)
    return EMPTY_FEATURES


__all__ = [
    "BooleanFeatures",
    "DEFAULT_VOCABULARY",
    "EMPTY_FEATURES",
    "FEATURE_VOCABULARY_VERSION",
    "FeatureSet",
    "FeatureVocabulary",
    "LegacyFeatures",
    "parse_feature_set",
    "phrases_match",
]
