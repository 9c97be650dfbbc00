# -*- coding: utf-8 -*-
"""
c45py.distribution
==================

Weighted class counts per bag (branch) of a split.

A :class:`Distribution` is a ``bags x classes`` matrix of (possibly
fractional) instance weights together with its row sums (per bag), column
sums (per class) and grand total.  The three aggregates are updated together
by every mutator, so they always agree with the matrix up to float rounding.
"""

from __future__ import annotations
from typing import TYPE_CHECKING
import numpy as np

from ._stats import _eq, _gr, _gr_or_eq

if TYPE_CHECKING:
    from .dataset import Dataset, Instance
    from .split import SplitModel


class Distribution:
    """
    Class distribution over ``num_bags`` bags.

    Parameters
    ----------
    num_bags : int
        Number of bags (subsets of a split).
    num_classes : int
        Number of class values.
    """

    def __init__(self, num_bags: int, num_classes: int):
        self._per_class_per_bag = np.zeros((int(num_bags), int(num_classes)), dtype=float)
        self._per_bag = np.zeros(int(num_bags), dtype=float)
        self._per_class = np.zeros(int(num_classes), dtype=float)
        self._total = 0.0

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_table(cls, table) -> "Distribution":
        table = np.array(table, dtype=float, ndmin=2)
        dist = cls(*table.shape)
        dist._per_class_per_bag = table
        dist._per_bag = table.sum(axis=1)
        dist._per_class = table.sum(axis=0)
        dist._total = float(table.sum())
        return dist

    @classmethod
    def from_dataset(cls, source: "Dataset") -> "Distribution":
        """One bag holding every instance of ``source``."""
        dist = cls(1, source.num_classes)
        dist.add_range(0, source, 0, len(source))
        return dist

    @classmethod
    def from_split(cls, source: "Dataset", model: "SplitModel") -> "Distribution":
        """One bag per subset of ``model``; unknowns are spread by its weights."""
        dist = cls(model.num_subsets, source.num_classes)
        codes = source.class_codes
        subsets = model.subset_indices(source)
        known = subsets >= 0
        np.add.at(dist._per_class_per_bag, (subsets[known], codes[known]),
                  source.weights[known])
        for i in np.flatnonzero(~known):
            dist.add_weights(source.instance(i), model.weights(source.instance(i)))
        dist._refresh()
        return dist

    @classmethod
    def merged(cls, to_merge: "Distribution") -> "Distribution":
        """Single bag obtained by merging all bags of ``to_merge``."""
        dist = cls(1, to_merge.num_classes)
        dist._per_class_per_bag[0] = to_merge._per_class
        dist._per_class = to_merge._per_class.copy()
        dist._per_bag[0] = to_merge._total
        dist._total = to_merge._total
        return dist

    @classmethod
    def merged_except(cls, to_merge: "Distribution", index: int) -> "Distribution":
        """Two bags: bag ``index`` of ``to_merge`` and all the others merged."""
        dist = cls(2, to_merge.num_classes)
        dist._per_class_per_bag[0] = to_merge._per_class_per_bag[index]
        dist._per_class_per_bag[1] = to_merge._per_class - to_merge._per_class_per_bag[index]
        dist._per_class = to_merge._per_class.copy()
        dist._per_bag[0] = to_merge._per_bag[index]
        dist._per_bag[1] = to_merge._total - to_merge._per_bag[index]
        dist._total = to_merge._total
        return dist

    def copy(self) -> "Distribution":
        dist = Distribution(self.num_bags, self.num_classes)
        dist._per_class_per_bag = self._per_class_per_bag.copy()
        dist._per_bag = self._per_bag.copy()
        dist._per_class = self._per_class.copy()
        dist._total = self._total
        return dist

    __copy__ = copy

    def _refresh(self) -> None:
        self._per_bag = self._per_class_per_bag.sum(axis=1)
        self._per_class = self._per_class_per_bag.sum(axis=0)
        self._total = float(self._per_class_per_bag.sum())

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def add(self, bag: int, instance: "Instance") -> None:
        c, w = instance.class_value, instance.weight
        self._per_class_per_bag[bag, c] += w
        self._per_bag[bag] += w
        self._per_class[c] += w
        self._total += w

    def sub(self, bag: int, instance: "Instance") -> None:
        c, w = instance.class_value, instance.weight
        self._per_class_per_bag[bag, c] -= w
        self._per_bag[bag] -= w
        self._per_class[c] -= w
        self._total -= w

    delete = sub

    def add_counts(self, bag: int, counts) -> None:
        counts = np.asarray(counts, dtype=float)
        s = float(counts.sum())
        self._per_class_per_bag[bag] += counts
        self._per_bag[bag] += s
        self._per_class += counts
        self._total += s

    def add_weights(self, instance: "Instance", weights) -> None:
        """Add ``instance`` to every bag, scaled by the per-bag ``weights``."""
        c = instance.class_value
        w = instance.weight * np.asarray(weights, dtype=float)
        self._per_class_per_bag[:, c] += w
        self._per_bag += w
        self._per_class[c] += float(w.sum())
        self._total += float(w.sum())

    def add_instances_with_unknown(self, source: "Dataset", attribute_index: int) -> None:
        """
        Spread every instance of ``source`` whose value for ``attribute_index``
        is missing over all bags, in proportion to the bags' current weight.
        """
        if _eq(self._total, 0):
            probs = np.full(self.num_bags, 1.0 / self.num_bags)
        else:
            probs = self._per_bag / self._total
        missing = source.missing_mask(attribute_index)
        if not missing.any():
            return
        codes = source.class_codes[missing]
        weights = source.weights[missing]
        per_class = np.bincount(codes, weights=weights, minlength=self.num_classes)
        self._per_class_per_bag += np.outer(probs, per_class)
        self._per_bag += probs * per_class.sum()
        self._per_class += per_class
        self._total += float(per_class.sum())

    def _range_counts(self, source: "Dataset", start: int, stop: int) -> np.ndarray:
        return np.bincount(source.class_codes[start:stop],
                           weights=source.weights[start:stop],
                           minlength=self.num_classes)

    def add_range(self, bag: int, source: "Dataset", start: int, stop: int) -> None:
        """Add instances ``start`` (inclusive) to ``stop`` (exclusive) to ``bag``."""
        self.add_counts(bag, self._range_counts(source, start, stop))

    def del_range(self, bag: int, source: "Dataset", start: int, stop: int) -> None:
        counts = self._range_counts(source, start, stop)
        s = float(counts.sum())
        self._per_class_per_bag[bag] -= counts
        self._per_bag[bag] -= s
        self._per_class -= counts
        self._total -= s

    def shift(self, src: int, dst: int, instance: "Instance") -> None:
        c, w = instance.class_value, instance.weight
        self._per_class_per_bag[src, c] -= w
        self._per_class_per_bag[dst, c] += w
        self._per_bag[src] -= w
        self._per_bag[dst] += w

    def shift_range(self, src: int, dst: int, source: "Dataset", start: int, stop: int) -> None:
        counts = self._range_counts(source, start, stop)
        s = float(counts.sum())
        self._per_class_per_bag[src] -= counts
        self._per_class_per_bag[dst] += counts
        self._per_bag[src] -= s
        self._per_bag[dst] += s

    def initialize(self) -> None:
        self._per_class_per_bag[:] = 0.0
        self._per_bag[:] = 0.0
        self._per_class[:] = 0.0
        self._total = 0.0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def num_bags(self) -> int:
        return self._per_bag.shape[0]

    @property
    def num_classes(self) -> int:
        return self._per_class.shape[0]

    def actual_num_bags(self) -> int:
        return sum(1 for w in self._per_bag if _gr(w, 0))

    def actual_num_classes(self, bag: int | None = None) -> int:
        counts = self._per_class if bag is None else self._per_class_per_bag[bag]
        return sum(1 for w in counts if _gr(w, 0))

    def matrix(self) -> np.ndarray:
        return self._per_class_per_bag

    def per_class_per_bag(self, bag: int, class_index: int) -> float:
        return float(self._per_class_per_bag[bag, class_index])

    def per_bag(self, bag: int) -> float:
        return float(self._per_bag[bag])

    def per_class(self, class_index: int) -> float:
        return float(self._per_class[class_index])

    def total(self) -> float:
        return float(self._total)

    def check(self, min_weight: float) -> bool:
        """True if at least two bags carry ``min_weight`` or more."""
        counter = 0
        for w in self._per_bag:
            if _gr_or_eq(w, min_weight):
                counter += 1
                if counter == 2:
                    return True
        return False

    def max_bag(self) -> int:
        """Index of the heaviest bag (the last one on ties)."""
        best, best_index = 0.0, -1
        for i, w in enumerate(self._per_bag):
            if _gr_or_eq(w, best):
                best, best_index = w, i
        return best_index

    def max_class(self, bag: int | None = None) -> int:
        """Most frequent class overall or in ``bag`` (the first one on ties)."""
        if bag is None or not _gr(self._per_bag[bag], 0):
            counts = self._per_class
        else:
            counts = self._per_class_per_bag[bag]
        best, best_index = 0.0, 0
        for j, w in enumerate(counts):
            if _gr(w, best):
                best, best_index = w, j
        return best_index

    def num_correct(self, bag: int | None = None) -> float:
        if bag is None:
            return float(self._per_class[self.max_class()])
        return float(self._per_class_per_bag[bag, self.max_class(bag)])

    def num_incorrect(self, bag: int | None = None) -> float:
        if bag is None:
            return self._total - self.num_correct()
        return float(self._per_bag[bag]) - self.num_correct(bag)

    def prob(self, class_index: int, bag: int | None = None) -> float:
        """Relative class frequency in ``bag``, or overall if it is empty."""
        if bag is not None and _gr(self._per_bag[bag], 0):
            return float(self._per_class_per_bag[bag, class_index] / self._per_bag[bag])
        if _eq(self._total, 0):
            return 0.0
        return float(self._per_class[class_index] / self._total)

    def laplace_prob(self, class_index: int, bag: int | None = None) -> float:
        """Relative class frequency with a Laplace correction of one per class."""
        k = float(self.num_classes)
        if bag is not None and _gr(self._per_bag[bag], 0):
            return float((self._per_class_per_bag[bag, class_index] + 1.0) /
                         (self._per_bag[bag] + k))
        return float((self._per_class[class_index] + 1.0) / (self._total + k))

    def subtract(self, other: "Distribution") -> "Distribution":
        """One-bag distribution holding ``self - other`` per class."""
        dist = Distribution(1, self.num_classes)
        dist._per_class_per_bag[0] = self._per_class - other._per_class
        dist._per_class = dist._per_class_per_bag[0].copy()
        dist._per_bag[0] = self._total - other._total
        dist._total = dist._per_bag[0]
        return dist

    def __repr__(self) -> str:
        rows = ", ".join(
            "[" + ", ".join(f"{v:g}" for v in row) + "]"
            for row in self._per_class_per_bag
        )
        return f"Distribution([{rows}], total={self._total:g})"
