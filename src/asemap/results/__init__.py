from .ase_variant import AseVariant, SampleObservation
from .ase_results import AseResults

__all__ = ["AseResults", "AseVariant", "SampleObservation"]
