"""Input panel: dataset contract, builder and CSV loader."""

from systemic_risk.data.dataset import Dataset, build_dataset
from systemic_risk.data.loader import load_dataset

__all__ = ["Dataset", "build_dataset", "load_dataset"]
