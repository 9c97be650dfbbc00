# -*- coding: utf-8 -*-
"""
c45py.split
===========

Candidate splits on a single attribute.

:class:`SplitModel` is a tagged variant: ``kind`` is ``"nominal"`` (one
branch per domain value), ``"numeric"`` (binary ``<=``/``>`` threshold) or
``"none"`` (the degenerate one-branch model used for leaves, built with
:meth:`SplitModel.no_split`).  Every kind answers the same questions: which
subset an instance goes to, how an instance with a missing value is spread
over the subsets, and how the training data is partitioned.

The entropy helpers work on unnormalized weights (``sum w log2 w``) so that a
distribution can be scored without dividing every cell by its total.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING, Optional
import numpy as np

from ._stats import (
    MAX_MIN_SPLIT, MIN_SPLIT_FRACTION, SMALL, SPLIT_VALUE_GAP,
    _eq, _gr, _gr_or_eq, _log_func, _sm, _sm_or_eq,
)
from .distribution import Distribution

if TYPE_CHECKING:
    from .dataset import Dataset, Instance

NOMINAL_SPLIT = "nominal"
NUMERIC_SPLIT = "numeric"
NO_SPLIT = "none"


# -----------------------------------------------------------------------------
# Split criteria
# -----------------------------------------------------------------------------
def _xlogx_sum(counts) -> float:
    counts = np.asarray(counts, dtype=float)
    counts = counts[counts >= 1e-6]
    return float(np.sum(counts * np.log2(counts)))

def old_entropy(bags: Distribution) -> float:
    """Entropy of the class distribution before splitting (bags ignored)."""
    per_class = [bags.per_class(j) for j in range(bags.num_classes)]
    return _log_func(bags.total()) - _xlogx_sum(per_class)

def new_entropy(bags: Distribution) -> float:
    """Sum of the entropies of the individual bags."""
    m = bags.matrix()
    per_bag = [bags.per_bag(i) for i in range(bags.num_bags)]
    return -(_xlogx_sum(m) - _xlogx_sum(per_bag))

def split_entropy(bags: Distribution) -> float:
    """Entropy of the bag sizes, class values ignored."""
    per_bag = [bags.per_bag(i) for i in range(bags.num_bags)]
    return _log_func(bags.total()) - _xlogx_sum(per_bag)

def split_info_gain(bags: Distribution, total_weight: float,
                    old_ent: Optional[float] = None) -> float:
    """
    Information gain per instance, discounted by the fraction of
    ``total_weight`` (all instances, missing values included) that the
    distribution does not cover.
    """
    known = bags.total()
    if total_weight <= 0 or known <= 0:
        return 0.0
    if old_ent is None:
        old_ent = old_entropy(bags)
    unknown_rate = (total_weight - known) / total_weight
    numerator = (1 - unknown_rate) * (old_ent - new_entropy(bags))
    # splits with no gain are useless
    if not math.isfinite(numerator) or _eq(numerator, 0):
        return 0.0
    return numerator / known

def split_gain_ratio(bags: Distribution, total_weight: float, gain: float) -> float:
    """Gain ratio; 0 for a trivial split (single non-empty bag)."""
    denominator = split_entropy(bags)
    if total_weight <= 0 or _eq(denominator, 0):
        return 0.0
    ratio = gain / (denominator / total_weight)
    return ratio if math.isfinite(ratio) else 0.0


def _format_number(x: float) -> str:
    return "%.12g" % x


# -----------------------------------------------------------------------------
# Split model
# -----------------------------------------------------------------------------
class SplitModel:
    """
    C4.5 split on one attribute.

    Parameters
    ----------
    attribute_index : int, default=-1
        Attribute to split on; ``-1`` for the no-split model.
    min_leaf_weight : float, default=2
        Minimum weight at least two subsets must carry.
    sum_of_weights : float or None, default=None
        Weight of all instances at the node, missing values included.  When
        ``None`` it is taken from the dataset passed to :meth:`build`.

    Attributes
    ----------
    kind : {"nominal", "numeric", "none"}
    num_subsets : int
        0 if the split was rejected, 1 for the no-split model, >= 2 otherwise.
    split_point : float
        Threshold of a numeric split (``inf`` otherwise).
    info_gain, gain_ratio : float
    distribution : Distribution
        Class distribution per subset.
    num_candidates : int
        Number of admissible thresholds examined for a numeric split.
    """

    def __init__(self, attribute_index: int = -1, min_leaf_weight: float = 2,
                 sum_of_weights: Optional[float] = None):
        self.attribute_index = int(attribute_index)
        self.min_leaf_weight = min_leaf_weight
        self.sum_of_weights = sum_of_weights
        self.kind = NO_SPLIT
        self.num_subsets = 0
        self.split_point = math.inf
        self.info_gain = 0.0
        self.gain_ratio = 0.0
        self.num_candidates = 0
        self.distribution: Optional[Distribution] = None

    @classmethod
    def no_split(cls, distribution: Distribution) -> "SplitModel":
        """One-subset model holding ``distribution`` merged into one bag."""
        model = cls()
        model.distribution = Distribution.merged(distribution)
        model.num_subsets = 1
        return model

    @classmethod
    def no_split_for(cls, data: "Dataset") -> "SplitModel":
        model = cls()
        model.distribution = Distribution.from_dataset(data)
        model.num_subsets = 1
        return model

    def __repr__(self) -> str:
        return (f"SplitModel(kind={self.kind!r}, attribute_index={self.attribute_index}, "
                f"num_subsets={self.num_subsets}, info_gain={self.info_gain:.4g}, "
                f"gain_ratio={self.gain_ratio:.4g})")

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------
    def build(self, data: "Dataset") -> "SplitModel":
        """
        Evaluate the attribute as a split of ``data``.  Class values are
        assumed to be known.  A numeric attribute sorts ``data`` in place.
        """
        self.num_subsets = 0
        self.split_point = math.inf
        self.info_gain = 0.0
        self.gain_ratio = 0.0
        self.num_candidates = 0
        if self.sum_of_weights is None:
            self.sum_of_weights = data.sum_of_weights()

        attribute = data.attribute(self.attribute_index)
        if attribute.is_nominal:
            self.kind = NOMINAL_SPLIT
            self._build_nominal(data, attribute.num_values)
        else:
            self.kind = NUMERIC_SPLIT
            data.sort(self.attribute_index)
            self._build_numeric(data)
        return self

    def _build_nominal(self, data: "Dataset", num_values: int) -> None:
        col = data.column(self.attribute_index)
        known = ~np.isnan(col)
        table = np.zeros((num_values, data.num_classes), dtype=float)
        np.add.at(table, (col[known].astype(int), data.class_codes[known]),
                  data.weights[known])
        self.distribution = Distribution.from_table(table)

        if self.distribution.check(self.min_leaf_weight):
            self.num_subsets = num_values
            self.info_gain = split_info_gain(self.distribution, self.sum_of_weights)
            self.gain_ratio = split_gain_ratio(self.distribution, self.sum_of_weights,
                                               self.info_gain)

    def _build_numeric(self, data: "Dataset") -> None:
        n_classes = data.num_classes
        values = data.column(self.attribute_index).tolist()
        # missing values are sorted last
        first_miss = int(np.count_nonzero(~data.missing_mask(self.attribute_index)))

        self.distribution = Distribution(2, n_classes)
        self.distribution.add_range(1, data, 0, first_miss)

        min_split = MIN_SPLIT_FRACTION * self.distribution.total() / n_classes
        if _sm_or_eq(min_split, self.min_leaf_weight):
            min_split = self.min_leaf_weight
        elif _gr(min_split, MAX_MIN_SPLIT):
            min_split = MAX_MIN_SPLIT

        if _sm(float(first_miss), 2 * min_split):
            return

        default_entropy = old_entropy(self.distribution)
        split_index = -1
        last = 0
        for nxt in range(1, first_miss):
            if values[nxt - 1] + SPLIT_VALUE_GAP < values[nxt]:
                self.distribution.shift_range(1, 0, data, last, nxt)
                if (_gr_or_eq(self.distribution.per_bag(0), min_split) and
                        _gr_or_eq(self.distribution.per_bag(1), min_split)):
                    gain = split_info_gain(self.distribution, self.sum_of_weights,
                                           default_entropy)
                    if _gr(gain, self.info_gain):
                        self.info_gain = gain
                        split_index = nxt - 1
                    self.num_candidates += 1
                last = nxt

        if self.num_candidates == 0:
            return

        # penalize the search over many thresholds
        self.info_gain -= math.log2(self.num_candidates) / self.sum_of_weights
        if split_index < 0 or _sm_or_eq(self.info_gain, 0):
            self.info_gain = 0.0
            return

        self.num_subsets = 2
        lower, upper = values[split_index], values[split_index + 1]
        self.split_point = (lower + upper) / 2
        if self.split_point == upper:
            self.split_point = lower

        self.distribution = Distribution(2, n_classes)
        self.distribution.add_range(0, data, 0, split_index + 1)
        self.distribution.add_range(1, data, split_index + 1, first_miss)
        self.gain_ratio = split_gain_ratio(self.distribution, self.sum_of_weights,
                                           self.info_gain)

    def check_model(self) -> bool:
        return self.num_subsets > 0

    def set_split_point(self, all_data: "Dataset") -> None:
        """Move a numeric threshold down to the largest training value <= it."""
        if self.kind != NUMERIC_SPLIT or self.num_subsets < 2:
            return
        col = all_data.column(self.attribute_index)
        col = col[~np.isnan(col)]
        below = col[col - self.split_point < SMALL]
        if below.size:
            self.split_point = float(below.max())

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------
    def subset_index(self, instance: "Instance") -> int:
        """Subset of ``instance``; -1 if it is spread over all subsets."""
        if self.kind == NO_SPLIT:
            return 0
        if instance.is_missing(self.attribute_index):
            return -1
        v = instance.value(self.attribute_index)
        if self.kind == NOMINAL_SPLIT:
            return int(v)
        return 0 if _sm_or_eq(v, self.split_point) else 1

    def subset_indices(self, data: "Dataset") -> np.ndarray:
        """Vectorized :meth:`subset_index` over a dataset."""
        n = len(data)
        if self.kind == NO_SPLIT:
            return np.zeros(n, dtype=int)
        col = data.column(self.attribute_index)
        known = ~np.isnan(col)
        out = np.full(n, -1, dtype=int)
        if self.kind == NOMINAL_SPLIT:
            out[known] = col[known].astype(int)
        else:
            out[known] = np.where(col[known] - self.split_point < SMALL, 0, 1)
        return out

    def _bag_shares(self) -> np.ndarray:
        total = self.distribution.total()
        if _eq(total, 0):
            return np.full(self.num_subsets, 1.0 / self.num_subsets)
        return np.array([self.distribution.per_bag(i) / total
                         for i in range(self.num_subsets)])

    def weights(self, instance: "Instance") -> Optional[np.ndarray]:
        """Per-subset weights of an instance with a missing value, else ``None``."""
        if self.kind == NO_SPLIT or not instance.is_missing(self.attribute_index):
            return None
        return self._bag_shares()

    def split(self, data: "Dataset") -> list:
        """
        Partition ``data`` into one dataset per subset.  Instances with a
        missing value go to every subset with a positive share, their weight
        multiplied by that share.
        """
        subsets = self.subset_indices(data)
        missing = subsets < 0
        shares = self._bag_shares() if missing.any() else None
        parts = []
        for j in range(self.num_subsets):
            in_bag = subsets == j
            w = data.weights
            if shares is not None and _gr(shares[j], 0):
                w = w.copy()
                w[missing] *= shares[j]
                in_bag = in_bag | missing
            idx = np.flatnonzero(in_bag)
            parts.append(data.subset(idx, w[idx]))
        return parts

    def reset_distribution(self, data: "Dataset") -> None:
        """Recompute the distribution from ``data`` (used by subtree raising)."""
        if self.kind == NO_SPLIT:
            self.distribution = Distribution.from_dataset(data)
            return
        known = np.flatnonzero(self.subset_indices(data) >= 0)
        distribution = Distribution.from_split(data.subset(known), self)
        distribution.add_instances_with_unknown(data, self.attribute_index)
        self.distribution = distribution

    # ------------------------------------------------------------------
    # Probabilities
    # ------------------------------------------------------------------
    def class_probability(self, class_index: int, instance: "Instance", subset: int) -> float:
        if subset <= -1:
            weights = self.weights(instance)
            if weights is None:
                return self.distribution.prob(class_index)
            return float(sum(w * self.distribution.prob(class_index, i)
                             for i, w in enumerate(weights)))
        if _gr(self.distribution.per_bag(subset), 0):
            return self.distribution.prob(class_index, subset)
        return self.distribution.prob(class_index)

    def class_laplace_probability(self, class_index: int, instance: "Instance",
                                  subset: int) -> float:
        if subset > -1:
            return self.distribution.laplace_prob(class_index, subset)
        weights = self.weights(instance)
        if weights is None:
            return self.distribution.laplace_prob(class_index)
        return float(sum(w * self.distribution.laplace_prob(class_index, i)
                         for i, w in enumerate(weights)))

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------
    def left_side(self, data: "Dataset") -> str:
        if self.kind == NO_SPLIT:
            return ""
        return data.attribute(self.attribute_index).name

    def right_side(self, index: int, data: "Dataset") -> str:
        if self.kind == NOMINAL_SPLIT:
            return f" = {data.attribute(self.attribute_index).value(index)}"
        if self.kind == NUMERIC_SPLIT:
            op = "<=" if index == 0 else ">"
            return f" {op} {_format_number(self.split_point)}"
        return ""

    def dump_label(self, index: int, data: "Dataset") -> str:
        """``class (weight)`` or ``class (weight/errors)`` for subset ``index``."""
        dist = self.distribution
        label = data.class_attribute.value(dist.max_class(index))
        text = f"{label} ({round(dist.per_bag(index), 2)}"
        errors = dist.num_incorrect(index)
        if _gr(errors, 0):
            text += f"/{round(errors, 2)}"
        return text + ")"
