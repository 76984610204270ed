from .builder import EVALUATIONS, HydratedEvaluation, build_record, hydrate_record, hydrate_state

__all__ = ["EVALUATIONS", "HydratedEvaluation", "build_record", "hydrate_record", "hydrate_state"]
