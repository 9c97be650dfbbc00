# -*- coding: utf-8 -*-
"""
c45py.tree
==========

This module implements a C4.5 decision tree classifier (the J48 variant of
Quinlan's algorithm).  It supports both numeric and nominal predictors,
missing values through fractional instances, collapsing of splits that do not
reduce the training error, pessimistic post-pruning controlled by a confidence
factor with optional subtree raising, and a scikit-learn-like API.

Besides training and prediction the classifier can render the tree as text,
export its rules and produce a Graphviz drawing.

The recursive structure lives in :class:`TreeNode`; each node owns the
:class:`~c45py.split.SplitModel` chosen for it and, while training data is
kept, the subset of instances that reached it.
"""

from __future__ import annotations
import logging
import math
import numbers
from typing import Iterator, Optional
import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin

from ._stats import COLLAPSE_SLACK, PRUNE_SLACK, _eq, _gr, _sm_or_eq, count_extra_error
from .dataset import Dataset, Instance
from .distribution import Distribution
from .selection import ModelSelection
from .split import SplitModel

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Node
# -----------------------------------------------------------------------------
class TreeNode:
    """A node of a C4.5 tree, and the subtree rooted at it.

    Parameters
    ----------
    model_selection : ModelSelection
        Chooses the split at every node of the subtree.
    cf : float, default=0.25
        Confidence factor for the pessimistic error estimate.
    subtree_raising : bool, default=True
        Whether :meth:`prune` may replace a node by its largest branch.

    Attributes
    ----------
    local_model : SplitModel
        Split used at this node (a no-split model for leaves).
    children : list[TreeNode] or None
        One child per subset of ``local_model``; ``None`` for leaves.
    is_leaf : bool
    is_empty : bool
        True for a leaf that received no training weight.
    data : Dataset or None
        Training instances that reached the node, when kept.
    """

    def __init__(self, model_selection: ModelSelection, *, cf: float = 0.25,
                 subtree_raising: bool = True):
        self.model_selection = model_selection
        self.cf = cf
        self.subtree_raising = subtree_raising
        self.local_model: Optional[SplitModel] = None
        self.children: Optional[list] = None
        self.is_leaf = False
        self.is_empty = False
        self.data: Optional[Dataset] = None

    def _new_tree(self) -> "TreeNode":
        return TreeNode(self.model_selection, cf=self.cf,
                        subtree_raising=self.subtree_raising)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    def build(self, data: Dataset, keep_data: bool = False) -> "TreeNode":
        """
        Grow the subtree for ``data`` (class values must be known).

        Parameters
        ----------
        data : Dataset
            Training instances reaching this node.
        keep_data : bool, default=False
            Keep every node's instances; subtree raising needs them.
        """
        self.data = data if keep_data else None
        self.is_leaf = False
        self.is_empty = False
        self.children = None
        self.local_model = self.model_selection.select_model(data)

        n_subsets = self.local_model.num_subsets
        if n_subsets < 1:
            raise RuntimeError(
                f"Selected split on attribute {self.local_model.attribute_index} "
                "has no subsets"
            )
        if n_subsets > 1:
            parts = self.local_model.split(data)
            self.children = []
            for i in range(n_subsets):
                self.children.append(self._new_tree().build(parts[i], keep_data))
                parts[i] = None
        else:
            self.is_leaf = True
            if _eq(data.sum_of_weights(), 0):
                self.is_empty = True
        return self

    def collapse(self) -> None:
        """Turn subtrees that do not reduce the training error into leaves."""
        if self.is_leaf:
            return
        errors_of_subtree = self.training_errors()
        errors_of_tree = self.local_model.distribution.num_incorrect()
        if errors_of_subtree >= errors_of_tree - COLLAPSE_SLACK:
            self._make_leaf()
        else:
            for child in self.children:
                child.collapse()

    def _make_leaf(self) -> None:
        self.children = None
        self.is_leaf = True
        self.local_model = SplitModel.no_split(self.local_model.distribution)

    def prune(self) -> None:
        """Prune the subtree with C4.5's error-based pruning."""
        if self.is_leaf:
            return

        for child in self.children:
            child.prune()

        largest = self.local_model.distribution.max_bag()
        if self.subtree_raising:
            if self.data is None:
                raise RuntimeError("Subtree raising needs the training data; "
                                   "build the tree with keep_data=True")
            errors_largest_branch = self.children[largest].estimated_errors_for_branch(self.data)
        else:
            errors_largest_branch = math.inf

        errors_leaf = self.estimated_errors_for_distribution(self.local_model.distribution)
        errors_tree = self.estimated_errors()

        if (_sm_or_eq(errors_leaf, errors_tree + PRUNE_SLACK) and
                _sm_or_eq(errors_leaf, errors_largest_branch + PRUNE_SLACK)):
            logger.debug("Pruned node to a leaf: leaf=%.3f subtree=%.3f branch=%.3f",
                         errors_leaf, errors_tree, errors_largest_branch)
            self._make_leaf()
            return

        if _sm_or_eq(errors_largest_branch, errors_tree + PRUNE_SLACK):
            logger.debug("Raised branch %d: branch=%.3f subtree=%.3f",
                         largest, errors_largest_branch, errors_tree)
            branch = self.children[largest]
            self.children = branch.children
            self.local_model = branch.local_model
            self.is_leaf = branch.is_leaf
            self.new_distribution(self.data)
            self.prune()

    def new_distribution(self, data: Dataset) -> None:
        """Recompute the distributions of the subtree for ``data``."""
        self.local_model.reset_distribution(data)
        self.data = data
        if not self.is_leaf:
            parts = self.local_model.split(data)
            for child, part in zip(self.children, parts):
                child.new_distribution(part)
        elif not _eq(data.sum_of_weights(), 0):
            self.is_empty = False

    def cleanup(self, header: Dataset) -> None:
        """Replace the kept training data by an empty ``header`` everywhere."""
        self.data = header
        if not self.is_leaf:
            for child in self.children:
                child.cleanup(header)

    # ------------------------------------------------------------------
    # Error estimates
    # ------------------------------------------------------------------
    def training_errors(self) -> float:
        if self.is_leaf:
            return self.local_model.distribution.num_incorrect()
        return sum(child.training_errors() for child in self.children)

    def estimated_errors(self) -> float:
        if self.is_leaf:
            return self.estimated_errors_for_distribution(self.local_model.distribution)
        return sum(child.estimated_errors() for child in self.children)

    def estimated_errors_for_branch(self, data: Dataset) -> float:
        """Estimated errors of this subtree if it received ``data`` instead."""
        if self.is_leaf:
            return self.estimated_errors_for_distribution(Distribution.from_dataset(data))
        saved = self.local_model.distribution
        self.local_model.reset_distribution(data)
        parts = self.local_model.split(data)
        self.local_model.distribution = saved
        return sum(child.estimated_errors_for_branch(part)
                   for child, part in zip(self.children, parts))

    def estimated_errors_for_distribution(self, dist: Distribution) -> float:
        if _eq(dist.total(), 0):
            return 0.0
        errors = dist.num_incorrect()
        return errors + count_extra_error(dist.total(), errors, self.cf)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def class_probability(self, class_index: int, instance: Instance,
                          weight: float = 1.0) -> float:
        if self.is_leaf:
            return weight * self.local_model.class_probability(class_index, instance, -1)
        tree_index = self.local_model.subset_index(instance)
        if tree_index == -1:
            weights = self.local_model.weights(instance)
            return sum(child.class_probability(class_index, instance, weights[i] * weight)
                       for i, child in enumerate(self.children) if not child.is_empty)
        if self.children[tree_index].is_empty:
            return weight * self.local_model.class_probability(class_index, instance, tree_index)
        return self.children[tree_index].class_probability(class_index, instance, weight)

    def laplace_probability(self, class_index: int, instance: Instance,
                            weight: float = 1.0) -> float:
        if self.is_leaf:
            return weight * self.local_model.class_laplace_probability(class_index, instance, -1)
        tree_index = self.local_model.subset_index(instance)
        if tree_index == -1:
            weights = self.local_model.weights(instance)
            return sum(child.laplace_probability(class_index, instance, weights[i] * weight)
                       for i, child in enumerate(self.children) if not child.is_empty)
        if self.children[tree_index].is_empty:
            return weight * self.local_model.class_laplace_probability(class_index, instance,
                                                                       tree_index)
        return self.children[tree_index].laplace_probability(class_index, instance, weight)

    def distribution_for_instance(self, instance: Instance, use_laplace: bool = False) -> np.ndarray:
        n_classes = self.local_model.distribution.num_classes
        prob = self.laplace_probability if use_laplace else self.class_probability
        return np.array([prob(j, instance) for j in range(n_classes)], dtype=float)

    def classify_instance(self, instance: Instance) -> int:
        max_prob, max_index = -1.0, 0
        for j in range(self.local_model.distribution.num_classes):
            p = self.class_probability(j, instance)
            if _gr(p, max_prob):
                max_prob, max_index = p, j
        return max_index

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------
    def num_leaves(self) -> int:
        if self.is_leaf:
            return 1
        return sum(child.num_leaves() for child in self.children)

    def num_nodes(self) -> int:
        if self.is_leaf:
            return 1
        return 1 + sum(child.num_nodes() for child in self.children)

    def dump_tree(self, header: Optional[Dataset] = None) -> str:
        """
        Indented text of the subtree, one line per branch::

            outlook = sunny
            |   humidity = high: no (3.0)
            |   humidity = normal: yes (2.0)
            outlook = overcast: yes (4.0)
        """
        header = header if header is not None else self.data
        if self.is_leaf:
            return ": " + self.local_model.dump_label(0, header)
        lines: list[str] = []
        self._dump(0, header, lines)
        return "\n".join(lines)

    def _dump(self, depth: int, header: Dataset, lines: list) -> None:
        model = self.local_model
        for i, child in enumerate(self.children):
            text = "|   " * depth + model.left_side(header) + model.right_side(i, header)
            if child.is_leaf:
                lines.append(text + ": " + model.dump_label(i, header))
            else:
                lines.append(text)
                child._dump(depth + 1, header, lines)

    def iter_rules(self, header: Dataset, conditions: tuple = ()) -> Iterator[tuple]:
        """Yield ``(conditions, class_index)`` for every root-to-leaf path."""
        if self.is_leaf:
            yield conditions, self.local_model.distribution.max_class()
            return
        model = self.local_model
        for i, child in enumerate(self.children):
            cond = (model.left_side(header) + model.right_side(i, header)).strip()
            if child.is_leaf:
                yield conditions + (cond,), model.distribution.max_class(i)
            else:
                yield from child.iter_rules(header, conditions + (cond,))


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class C45Classifier(ClassifierMixin, BaseEstimator):
    """
    Decision tree classifier implementing Quinlan's C4.5 (J48 flavour).

    Splits are chosen by gain ratio among the attributes with at least
    average information gain.  Nominal attributes split into one branch per
    value, numeric attributes into a binary ``<=``/``>`` test.  Instances with
    a missing value for the split attribute are passed down every branch with
    a fractional weight, both in training and in prediction.  After growing,
    splits that do not reduce the training error are collapsed and the tree
    is pruned with pessimistic error estimates, optionally replacing a node by
    its largest branch (subtree raising).

    Parameters
    ----------
    min_samples_leaf : int, default=2
        Minimum (weighted) number of instances that at least two branches of
        a split must hold.
    cf : float, default=0.25
        Confidence factor for pruning, in (0, 0.5].  Smaller values prune
        more.  Values above 0.5 emit a ``RuntimeWarning`` and leave the error
        estimates unadjusted.
    pruning : bool, default=True
        Whether to run error-based pruning after collapsing.
    subtree_raising : bool, default=True
        Whether pruning may raise the largest branch of a node.
    keep_data : bool, default=False
        Keep the training instances in every node after fitting.
    laplace : bool, default=False
        Use Laplace-smoothed leaf estimates in :meth:`predict_proba`.
    feature_names : list[str] or None, default=None
        Names for the input features, used by the text and graph exports.
    categorical_features : list[int|str] or None, default=None
        Indices or names of nominal input features.  All other features are
        treated as numeric.

    Attributes
    ----------
    tree_ : TreeNode
        Root of the fitted tree.
    classes_ : ndarray
        Class labels, in the order used by :meth:`predict_proba`.
    header_ : Dataset
        Empty dataset holding the attribute metadata seen in fit.
    feature_names_ : list[str]
    n_features_in_ : int
    """

    def __init__(
        self,
        *,
        min_samples_leaf: int = 2,
        cf: float = 0.25,
        pruning: bool = True,
        subtree_raising: bool = True,
        keep_data: bool = False,
        laplace: bool = False,
        feature_names: list[str] | None = None,
        categorical_features: list[int | str] | None = None,
    ):
        self.min_samples_leaf = min_samples_leaf
        self.cf = cf
        self.pruning = pruning
        self.subtree_raising = subtree_raising
        self.keep_data = keep_data
        self.laplace = laplace
        self.feature_names = feature_names
        self.categorical_features = categorical_features

    def _check_params(self):
        if (isinstance(self.min_samples_leaf, bool) or
                not isinstance(self.min_samples_leaf, numbers.Integral) or
                self.min_samples_leaf < 1):
            raise ValueError("min_samples_leaf must be an integer >= 1")
        if not (isinstance(self.cf, numbers.Real) and self.cf > 0):
            raise ValueError("cf must be a number > 0")

    def fit(self, X, y, sample_weight=None, feature_names=None):
        """
        Build the tree from raw arrays.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training samples.  Missing values may be represented by ``None``
            or ``numpy.nan``.
        y : array-like of shape (n_samples,)
            Class labels.  Samples with a missing label are ignored.
        sample_weight : array-like of shape (n_samples,), optional
            Non-negative instance weights.
        feature_names : list[str], optional
            Overrides the ``feature_names`` parameter.

        Returns
        -------
        self
        """
        names = feature_names if feature_names is not None else self.feature_names
        dataset = Dataset.from_arrays(X, y, feature_names=names,
                                      categorical_features=self.categorical_features,
                                      sample_weight=sample_weight)
        return self.fit_dataset(dataset)

    def fit_dataset(self, dataset: Dataset):
        """Build the tree from an encoded :class:`~c45py.dataset.Dataset`."""
        self._check_params()
        if not dataset.class_attribute.is_nominal:
            raise ValueError("C45Classifier needs a nominal class attribute")
        data = dataset.delete_with_missing_class()
        if len(data) == 0:
            raise ValueError("No training instances with a known class")
        if _eq(data.sum_of_weights(), 0):
            raise ValueError("Training instances have zero total weight")

        self.header_ = data.empty_copy()
        self.classes_ = np.array(data.class_attribute.values)
        self.feature_names_ = [att.name for i, att in enumerate(data.attributes)
                               if i != data.class_index]
        self.n_features_in_ = len(self.feature_names_)

        raise_subtree = self.pruning and self.subtree_raising
        selection = ModelSelection(self.min_samples_leaf, data)
        tree = TreeNode(selection, cf=self.cf, subtree_raising=raise_subtree)
        tree.build(data, keep_data=raise_subtree or self.keep_data)
        tree.collapse()
        if self.pruning:
            tree.prune()
        if not self.keep_data:
            tree.cleanup(self.header_)
            selection.cleanup()
        self.tree_ = tree
        logger.info("Fitted C4.5 tree: %d leaves, %d nodes",
                    tree.num_leaves(), tree.num_nodes())
        return self

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def _check_fitted(self):
        if getattr(self, "tree_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def _instances(self, X) -> list:
        self._check_fitted()
        X = np.asarray(X, dtype=object)
        if X.ndim != 2:
            raise ValueError("X must be a 2-dimensional array")
        return [self.header_.encode_row(row) for row in X]

    def classify(self, record) -> int:
        """Index into :attr:`classes_` of the predicted class of one record."""
        self._check_fitted()
        return self.tree_.classify_instance(self.header_.encode_row(record))

    def class_distribution(self, record, use_laplace: bool = False) -> np.ndarray:
        """Class probabilities of one record."""
        self._check_fitted()
        return self.tree_.distribution_for_instance(self.header_.encode_row(record),
                                                    use_laplace)

    def predict(self, X):
        """
        Predict class labels for the provided samples.

        Samples with a missing value at a split are sent down all branches
        and the class with the highest combined probability is returned.

        Raises
        ------
        ValueError
            If the estimator has not been fitted, or a sample cannot be
            routed (wrong number of features, unseen nominal value).
        """
        instances = self._instances(X)
        idx = [self.tree_.classify_instance(inst) for inst in instances]
        return self.classes_[np.asarray(idx, dtype=int)]

    def predict_proba(self, X):
        """
        Predict class probabilities for the provided samples, in the order of
        :attr:`classes_`.  Laplace-smoothed when ``laplace=True``.
        """
        instances = self._instances(X)
        return np.array([self.tree_.distribution_for_instance(inst, self.laplace)
                         for inst in instances])

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def leaf_count(self) -> int:
        self._check_fitted()
        return self.tree_.num_leaves()

    def node_count(self) -> int:
        self._check_fitted()
        return self.tree_.num_nodes()

    def render(self) -> str:
        """Text dump of the tree followed by its leaf and node counts."""
        self._check_fitted()
        title = "C4.5 pruned tree" if self.pruning else "C4.5 unpruned tree"
        return "\n".join([
            title,
            "-" * 18,
            "",
            self.tree_.dump_tree(self.header_),
            "",
            f"Number of Leaves  : \t{self.leaf_count()}",
            "",
            f"Size of the tree : \t{self.node_count()}",
        ])

    def __str__(self) -> str:
        if getattr(self, "tree_", None) is None:
            return "C4.5: no model built yet."
        return self.render()

    def print_tree(self):
        """Pretty-print the decision tree to ``stdout``."""
        print(self.render())

    def export_rules(self, *, class_names=None) -> list[str]:
        """
        Export all decision rules in the tree as a list of strings of the
        form ``<antecedent> => <predicted class>``.

        Parameters
        ----------
        class_names : list[str], optional
            Names for the classes, ordered according to ``self.classes_``.
        """
        self._check_fitted()
        rules: list[str] = []
        for conditions, cls in self.tree_.iter_rules(self.header_):
            body = " AND ".join(conditions) if conditions else "<root>"
            pred = class_names[cls] if class_names is not None else str(self.classes_[cls])
            rules.append(f"{body} => {pred}")
        return rules

    def export_graphviz(self, filename: str | None = None, *, class_names=None,
                        format: str = "png") -> str:
        """
        Export the tree structure in Graphviz format.

        When ``format='dot'`` the DOT source is written directly and no
        external Graphviz binary is required.  For other formats the system
        ``dot`` command is used; if it is unavailable a ``.dot`` file is
        written instead.

        Returns
        -------
        str
            Path to the written file, or the DOT source code if ``filename``
            is None.
        """
        self._check_fitted()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        dot = graphviz.Digraph(format=format)
        self._add_graph_nodes(dot, self.tree_, "0", class_names)

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except graphviz.ExecutableNotFound:
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

    def _add_graph_nodes(self, dot, node: TreeNode, name: str, cn):
        dist = node.local_model.distribution
        if node.is_leaf:
            cls = dist.max_class()
            pred = cn[cls] if cn is not None else str(self.classes_[cls])
            dot.node(name, f"{pred}\n({round(dist.total(), 2)}/{round(dist.num_incorrect(), 2)})",
                     shape="box", style="filled", color="lightgrey")
            return
        model = node.local_model
        dot.node(name, model.left_side(self.header_), shape="ellipse",
                 style="filled", color="lightblue")
        for i, child in enumerate(node.children):
            child_id = f"{name}_{i}"
            self._add_graph_nodes(dot, child, child_id, cn)
            dot.edge(name, child_id, label=model.right_side(i, self.header_).strip())
