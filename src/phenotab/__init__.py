"""phenotab: tabular clinical data to per-subject phenotype records."""

__version__ = "0.1.0"
