# c45py/__init__.py
"""
c45py: C4.5 (J48) Decision Trees in pure Python (scikit-learn style).

Exports:
    - C45Classifier
    - Dataset, Attribute, Instance
    - Distribution, SplitModel, ModelSelection, TreeNode
    - count_extra_error
"""
from ._stats import count_extra_error
from .dataset import Attribute, Dataset, Instance
from .distribution import Distribution
from .selection import ModelSelection
from .split import SplitModel
from .tree import C45Classifier, TreeNode

__all__ = [
    "C45Classifier",
    "TreeNode",
    "ModelSelection",
    "SplitModel",
    "Distribution",
    "Dataset",
    "Attribute",
    "Instance",
    "count_extra_error",
]
__version__ = "0.1.0"
