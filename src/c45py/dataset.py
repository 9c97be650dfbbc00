# -*- coding: utf-8 -*-
"""
c45py.dataset
=============

In-memory dataset abstraction consumed by the tree builder.

A :class:`Dataset` stores every attribute, the class attribute included, as a
column of a float matrix.  Nominal values are stored as the index of the
value in the attribute's domain and missing values as ``NaN``; this keeps the
split search and the distribution bookkeeping purely numeric.  Raw
``X, y`` arrays (numbers, strings, ``None``/``NaN`` for missing) are turned
into a dataset with :meth:`Dataset.from_arrays`.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence
import numpy as np

from ._stats import _isnan_scalar

NOMINAL = "nominal"
NUMERIC = "numeric"


# -----------------------------------------------------------------------------
# Attribute metadata
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Attribute:
    """Name, kind and (for nominal attributes) the ordered value domain."""

    name: str
    kind: str = NUMERIC
    values: tuple = ()

    def __post_init__(self):
        if self.kind not in (NOMINAL, NUMERIC):
            raise ValueError(f"Unknown attribute kind {self.kind!r}")
        if self.kind == NOMINAL and len(self.values) == 0:
            raise ValueError(f"Nominal attribute {self.name!r} needs at least one value")

    @classmethod
    def nominal(cls, name: str, values: Sequence) -> "Attribute":
        return cls(name, NOMINAL, tuple(values))

    @classmethod
    def numeric(cls, name: str) -> "Attribute":
        return cls(name, NUMERIC)

    @property
    def is_nominal(self) -> bool:
        return self.kind == NOMINAL

    @property
    def is_numeric(self) -> bool:
        return self.kind == NUMERIC

    @property
    def num_values(self) -> int:
        return len(self.values)

    def index_of(self, value) -> int:
        try:
            return self.values.index(value)
        except ValueError:
            raise ValueError(
                f"Value {value!r} is not in the domain of attribute {self.name!r}"
            ) from None

    def value(self, index: int):
        return self.values[int(index)]


# -----------------------------------------------------------------------------
# Instance
# -----------------------------------------------------------------------------
@dataclass
class Instance:
    """One (possibly fractionally weighted) record of a dataset."""

    values: np.ndarray
    weight: float = 1.0
    class_index: int = -1

    def value(self, attribute_index: int) -> float:
        return float(self.values[attribute_index])

    def is_missing(self, attribute_index: int) -> bool:
        return bool(np.isnan(self.values[attribute_index]))

    @property
    def class_value(self) -> int:
        v = self.values[self.class_index]
        return -1 if np.isnan(v) else int(v)


# -----------------------------------------------------------------------------
# Dataset
# -----------------------------------------------------------------------------
class Dataset:
    """
    Ordered collection of weighted instances sharing attribute metadata.

    Parameters
    ----------
    attributes : sequence of Attribute
        All attributes, including the class attribute.
    values : array-like of shape (n_instances, n_attributes)
        Encoded values; ``NaN`` marks a missing value.
    weights : array-like of shape (n_instances,), optional
        Instance weights, 1.0 by default.
    class_index : int, default=-1
        Position of the class attribute.  Negative indices count from the end.
    """

    def __init__(self, attributes: Sequence[Attribute], values=None,
                 weights=None, class_index: int = -1):
        self.attributes: list[Attribute] = list(attributes)
        n_att = len(self.attributes)
        if n_att == 0:
            raise ValueError("A dataset needs at least one attribute")
        if values is None:
            values = np.empty((0, n_att), dtype=float)
        self.values = np.array(values, dtype=float).reshape(-1, n_att)
        n = self.values.shape[0]
        if weights is None:
            self.weights = np.ones(n, dtype=float)
        else:
            self.weights = np.array(weights, dtype=float).reshape(-1)
            if self.weights.shape[0] != n:
                raise ValueError("weights must have one entry per instance")
        if class_index < 0:
            class_index += n_att
        if not 0 <= class_index < n_att:
            raise ValueError(f"class_index {class_index} out of range")
        self.class_index = int(class_index)
        self._class_codes: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Construction from raw arrays
    # ------------------------------------------------------------------
    @classmethod
    def from_arrays(cls, X, y, *, feature_names=None, categorical_features=None,
                    sample_weight=None, class_name: str = "class") -> "Dataset":
        """
        Encode raw ``X, y`` arrays into a dataset.

        Columns listed in ``categorical_features`` (by index or by name) become
        nominal attributes whose domain is the sorted set of observed values;
        every other column must be numeric.  ``None`` and ``NaN`` are treated
        as missing, in ``X`` as well as in ``y``.  The class attribute is
        appended as the last column.
        """
        if feature_names is None:
            cols = getattr(X, "columns", None)
            if cols is not None:
                feature_names = [str(c) for c in cols]
        X = np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise ValueError("X must be a 2-dimensional array")
        y = np.asarray(y, dtype=object).reshape(-1)
        n, n_features = X.shape
        if y.shape[0] != n:
            raise ValueError("X and y must have the same number of rows")

        if feature_names is None:
            feature_names = [f"f{i}" for i in range(n_features)]
        feature_names = list(feature_names)
        if len(feature_names) != n_features:
            raise ValueError("feature_names length must match X.shape[1]")

        cats = set()
        if categorical_features is not None:
            name_to_idx = {name: i for i, name in enumerate(feature_names)}
            for c in categorical_features:
                if isinstance(c, str):
                    if c not in name_to_idx:
                        raise ValueError(f"Unknown categorical feature {c!r}")
                    cats.add(name_to_idx[c])
                else:
                    cats.add(int(c))

        attributes = []
        values = np.full((n, n_features + 1), np.nan, dtype=float)
        for j in range(n_features):
            col = X[:, j]
            known = np.array([not _isnan_scalar(v) for v in col], dtype=bool)
            if j in cats:
                domain = _domain(col[known], feature_names[j])
                attributes.append(Attribute.nominal(feature_names[j], domain))
                lookup = {v: i for i, v in enumerate(domain)}
                values[known, j] = [lookup[_native(v)] for v in col[known]]
            else:
                attributes.append(Attribute.numeric(feature_names[j]))
                try:
                    values[known, j] = col[known].astype(float)
                except (TypeError, ValueError):
                    raise ValueError(
                        f"Feature {feature_names[j]!r} is not numeric; "
                        "list it in categorical_features"
                    ) from None

        known = np.array([not _isnan_scalar(v) for v in y], dtype=bool)
        classes = _domain(y[known], class_name)
        attributes.append(Attribute.nominal(class_name, classes))
        lookup = {v: i for i, v in enumerate(classes)}
        values[known, n_features] = [lookup[_native(v)] for v in y[known]]

        if sample_weight is not None:
            sample_weight = np.asarray(sample_weight, dtype=float)
            if sample_weight.shape != (n,):
                raise ValueError("sample_weight must have the same length as y")
            if np.any(sample_weight < 0):
                raise ValueError("sample_weight must be non-negative")
        return cls(attributes, values, sample_weight, class_index=n_features)

    def encode_row(self, row) -> Instance:
        """
        Encode one raw record (feature values only, in attribute order,
        class attribute excluded) against this dataset's header.
        """
        row = list(np.asarray(row, dtype=object).reshape(-1))
        n_features = self.num_attributes - 1
        if len(row) != n_features:
            raise ValueError(
                f"Record has {len(row)} values, expected {n_features}"
            )
        encoded = np.full(self.num_attributes, np.nan, dtype=float)
        features = [i for i in range(self.num_attributes) if i != self.class_index]
        for att_index, v in zip(features, row):
            if _isnan_scalar(v):
                continue
            attribute = self.attributes[att_index]
            if attribute.is_nominal:
                encoded[att_index] = attribute.index_of(_native(v))
            else:
                encoded[att_index] = float(v)
        return Instance(encoded, 1.0, self.class_index)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    @property
    def num_attributes(self) -> int:
        return len(self.attributes)

    def attribute(self, index: int) -> Attribute:
        return self.attributes[index]

    @property
    def class_attribute(self) -> Attribute:
        return self.attributes[self.class_index]

    @property
    def num_classes(self) -> int:
        return self.class_attribute.num_values

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return self.values.shape[0]

    def instance(self, i: int) -> Instance:
        return Instance(self.values[i], float(self.weights[i]), self.class_index)

    def __iter__(self) -> Iterator[Instance]:
        for i in range(len(self)):
            yield self.instance(i)

    def sum_of_weights(self) -> float:
        return float(self.weights.sum())

    @property
    def class_codes(self) -> np.ndarray:
        """Class value of every instance as ``int`` (``-1`` when missing)."""
        if self._class_codes is None:
            col = self.values[:, self.class_index]
            codes = np.full(col.shape[0], -1, dtype=int)
            known = ~np.isnan(col)
            codes[known] = col[known].astype(int)
            self._class_codes = codes
        return self._class_codes

    def column(self, attribute_index: int) -> np.ndarray:
        return self.values[:, attribute_index]

    def missing_mask(self, attribute_index: int) -> np.ndarray:
        return np.isnan(self.values[:, attribute_index])

    # ------------------------------------------------------------------
    # Reshaping
    # ------------------------------------------------------------------
    def sort(self, attribute_index: int) -> "Dataset":
        """Stable in-place sort by an attribute; missing values go last."""
        order = np.argsort(self.values[:, attribute_index], kind="mergesort")
        self.values = self.values[order]
        self.weights = self.weights[order]
        self._class_codes = None
        return self

    def empty_copy(self) -> "Dataset":
        """Same attributes and class index, no instances."""
        return Dataset(self.attributes, None, None, self.class_index)

    def subset(self, indices, weights=None) -> "Dataset":
        indices = np.asarray(indices, dtype=int)
        w = self.weights[indices] if weights is None else weights
        return Dataset(self.attributes, self.values[indices], w, self.class_index)

    def append(self, instance: Instance) -> None:
        row = np.asarray(instance.values, dtype=float).reshape(1, -1)
        if row.shape[1] != self.num_attributes:
            raise ValueError("Instance does not match the dataset's attributes")
        self.values = np.vstack([self.values, row])
        self.weights = np.append(self.weights, float(instance.weight))
        self._class_codes = None

    def delete_with_missing_class(self) -> "Dataset":
        """Copy of the dataset without the instances whose class is missing."""
        keep = ~self.missing_mask(self.class_index)
        return self.subset(np.flatnonzero(keep))


def _native(v):
    # numpy scalars -> python scalars so lookups match the stored domain
    return v.item() if isinstance(v, np.generic) else v

def _domain(col, name) -> list:
    vals = [_native(v) for v in col]
    try:
        return sorted(set(vals))
    except TypeError:
        raise ValueError(f"Values of {name!r} have mixed, unorderable types") from None
