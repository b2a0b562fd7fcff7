from typing import List

from .config import ALL
from .models import FilterSpecification, FireDetection


class FireFilter:
    """
    Derives the filtered view from the raw detection set and the active filter.
    Pure and deterministic: input order is preserved and nothing is mutated.
    """

    @classmethod
    def derive(cls, raw_fires: List[FireDetection], spec: FilterSpecification) -> List[FireDetection]:
        """Keep detections satisfying date range AND confidence AND region."""

        if not raw_fires:
            return []

        return [fire for fire in raw_fires if cls.matches(fire, spec)]

    @classmethod
    def matches(cls, fire: FireDetection, spec: FilterSpecification) -> bool:
        return (
            cls._in_date_range(fire, spec)
            and cls._matches_confidence(fire, spec)
            and cls._matches_region(fire, spec)
        )

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------
    @staticmethod
    def _in_date_range(fire: FireDetection, spec: FilterSpecification) -> bool:
        """Inclusive on both ends; skipped unless both bounds are set."""
        if spec.start_date is None or spec.end_date is None:
            return True
        return spec.start_date <= fire.acq_date <= spec.end_date

    @staticmethod
    def _matches_confidence(fire: FireDetection, spec: FilterSpecification) -> bool:
        return spec.confidence == ALL or fire.confidence == spec.confidence

    @staticmethod
    def _matches_region(fire: FireDetection, spec: FilterSpecification) -> bool:
        # Exact label equality, no prefix or case folding
        return spec.region == ALL or fire.region == spec.region
