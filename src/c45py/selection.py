# -*- coding: utf-8 -*-
"""
c45py.selection
===============

Choice of the split used at a tree node.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Optional

from ._stats import AVERAGE_GAIN_SLACK, MULTI_VALUED_FRACTION, _eq, _gr, _sm
from .distribution import Distribution
from .split import SplitModel

if TYPE_CHECKING:
    from .dataset import Dataset

logger = logging.getLogger(__name__)


class ModelSelection:
    """
    Selects the C4.5 split for a dataset.

    Every non-class attribute is evaluated with a :class:`SplitModel`.  Only
    attributes whose information gain reaches the average gain (minus a small
    slack) compete, and among those the highest gain ratio wins.  Nominal
    attributes with very many values are left out of the average unless all
    attributes are like that; otherwise they would drag the average up and
    exclude useful attributes.

    Parameters
    ----------
    min_leaf_weight : float
        Minimum weight that at least two subsets of a split must carry.
    all_data : Dataset or None
        The full training set.  Its size drives the multi-valued heuristic and
        numeric thresholds are snapped to its values.  The selection only
        reads it.
    """

    def __init__(self, min_leaf_weight: float, all_data: Optional["Dataset"] = None):
        self.min_leaf_weight = min_leaf_weight
        self.all_data = all_data

    def cleanup(self) -> None:
        """Drop the reference to the training data."""
        self.all_data = None

    def _is_many_valued(self, attribute) -> bool:
        return (attribute.is_nominal and not
                _sm(float(attribute.num_values),
                    MULTI_VALUED_FRACTION * float(len(self.all_data))))

    def select_model(self, data: "Dataset") -> SplitModel:
        """
        Return the best split for ``data``, or the no-split model when no
        attribute gives a useful one.  Class values must be known.
        """
        check = Distribution.from_dataset(data)
        no_split = SplitModel.no_split(check)
        if (_sm(check.total(), 2 * self.min_leaf_weight) or
                _eq(check.total(), check.per_class(check.max_class()))):
            return no_split

        candidates = [i for i in range(data.num_attributes) if i != data.class_index]

        # all attributes nominal with a lot of values?
        multi_valued = True
        if self.all_data is not None:
            multi_valued = all(self._is_many_valued(data.attribute(i)) for i in candidates)

        sum_of_weights = data.sum_of_weights()
        models: dict[int, SplitModel] = {}
        average_gain = 0.0
        valid = 0
        for i in candidates:
            model = SplitModel(i, self.min_leaf_weight, sum_of_weights).build(data)
            models[i] = model
            if not model.check_model():
                continue
            if (self.all_data is None or multi_valued or
                    not self._is_many_valued(data.attribute(i))):
                average_gain += model.info_gain
                valid += 1

        if valid == 0:
            return no_split
        average_gain /= valid

        # strict comparison: the lowest attribute index wins ties
        best: Optional[SplitModel] = None
        best_ratio = 0.0
        for i in candidates:
            model = models[i]
            if (model.check_model() and
                    model.info_gain >= average_gain - AVERAGE_GAIN_SLACK and
                    _gr(model.gain_ratio, best_ratio)):
                best = model
                best_ratio = model.gain_ratio

        if best is None or _eq(best_ratio, 0):
            return no_split

        # keep the complete distribution, unknowns included, with the model
        best.distribution.add_instances_with_unknown(data, best.attribute_index)
        if self.all_data is not None:
            best.set_split_point(self.all_data)

        logger.debug("Split on %r (%s): gain=%.4f gain_ratio=%.4f over %.2f instances",
                     data.attribute(best.attribute_index).name, best.kind,
                     best.info_gain, best.gain_ratio, sum_of_weights)
        return best
