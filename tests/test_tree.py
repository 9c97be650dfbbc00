import numpy as np
import pytest
from c45py import Attribute, Dataset, ModelSelection, TreeNode


def _play_tennis():
    """Quinlan's 14-record weather data, all attributes nominal."""
    rows = [
        ['sunny', 'hot', 'high', 'false', 'no'],
        ['sunny', 'hot', 'high', 'true', 'no'],
        ['overcast', 'hot', 'high', 'false', 'yes'],
        ['rainy', 'mild', 'high', 'false', 'yes'],
        ['rainy', 'cool', 'normal', 'false', 'yes'],
        ['rainy', 'cool', 'normal', 'true', 'no'],
        ['overcast', 'cool', 'normal', 'true', 'yes'],
        ['sunny', 'mild', 'high', 'false', 'no'],
        ['sunny', 'cool', 'normal', 'false', 'yes'],
        ['rainy', 'mild', 'normal', 'false', 'yes'],
        ['sunny', 'mild', 'normal', 'true', 'yes'],
        ['overcast', 'mild', 'high', 'true', 'yes'],
        ['overcast', 'hot', 'normal', 'false', 'yes'],
        ['rainy', 'mild', 'high', 'true', 'no'],
    ]
    arr = np.array(rows, dtype=object)
    return Dataset.from_arrays(arr[:, :4], arr[:, 4],
                               feature_names=['outlook', 'temperature', 'humidity', 'windy'],
                               categorical_features=[0, 1, 2, 3])


def _noisy(n=300, seed=0):
    """Two informative numeric features, one noise feature and 15% label noise."""
    rng = np.random.RandomState(seed)
    X = rng.uniform(0, 10, size=(n, 3))
    y = ((X[:, 0] > 5) ^ (X[:, 1] > 7)).astype(int)
    flip = rng.uniform(size=n) < 0.15
    y[flip] = 1 - y[flip]
    return Dataset.from_arrays(X, y)


def _grow(data, keep_data=True, cf=0.25):
    selection = ModelSelection(2, data)
    return TreeNode(selection, cf=cf).build(data, keep_data)


def test_build_play_tennis():
    data = _play_tennis()
    tree = _grow(data)
    assert not tree.is_leaf
    assert data.attribute(tree.local_model.attribute_index).name == 'outlook'
    assert tree.num_leaves() == 5
    assert tree.num_nodes() == 8
    assert tree.training_errors() == 0
    for i in range(len(data)):
        inst = data.instance(i)
        assert tree.classify_instance(inst) == inst.class_value


def test_children_keep_their_data():
    data = _play_tennis()
    tree = _grow(data, keep_data=True)
    assert len(tree.data) == 14
    assert [len(child.data) for child in tree.children] == [4, 5, 5]


def test_leaves_are_pure_or_unsplittable():
    data = _play_tennis()
    tree = _grow(data)
    stack = [tree]
    while stack:
        node = stack.pop()
        if node.is_leaf:
            dist = node.local_model.distribution
            assert dist.num_incorrect() == 0 or dist.total() < 4
        else:
            stack.extend(node.children)


def test_collapse_is_idempotent():
    data = _noisy()
    tree = _grow(data)
    tree.collapse()
    first = (tree.num_leaves(), tree.num_nodes())
    tree.collapse()
    assert (tree.num_leaves(), tree.num_nodes()) == first


def test_pruning_never_grows_the_tree():
    data = _noisy()
    tree = _grow(data)
    tree.collapse()
    unpruned = tree.num_nodes()
    tree.prune()
    assert tree.num_nodes() <= unpruned
    assert tree.num_leaves() >= 1


def test_smaller_confidence_prunes_harder():
    loose = _grow(_noisy(), cf=0.5)
    loose.collapse()
    loose.prune()
    tight = _grow(_noisy(), cf=0.01)
    tight.collapse()
    tight.prune()
    assert tight.num_leaves() <= loose.num_leaves()


def test_pruning_keeps_play_tennis_tree():
    data = _play_tennis()
    tree = _grow(data)
    tree.collapse()
    tree.prune()
    assert tree.num_leaves() == 5
    assert tree.estimated_errors() < tree.estimated_errors_for_distribution(
        tree.local_model.distribution)


def test_subtree_raising_needs_data():
    data = _play_tennis()
    tree = _grow(data, keep_data=False)
    with pytest.raises(RuntimeError):
        tree.prune()


def test_estimated_errors_for_branch_restores_distribution():
    data = _play_tennis()
    tree = _grow(data)
    sunny = tree.children[2]
    before = sunny.local_model.distribution
    sunny.estimated_errors_for_branch(data)
    assert sunny.local_model.distribution is before


def test_cleanup_replaces_data_with_header():
    data = _play_tennis()
    tree = _grow(data)
    header = data.empty_copy()
    tree.cleanup(header)
    assert tree.data is header
    assert all(child.data is header for child in tree.children)


def test_missing_value_probabilities_sum_to_one():
    data = _play_tennis()
    tree = _grow(data)
    inst = data.encode_row(['sunny', 'hot', None, 'false'])
    dist = tree.distribution_for_instance(inst)
    assert dist.sum() == pytest.approx(1.0)
    # 3 of 5 sunny records have high humidity
    assert dist[0] == pytest.approx(0.6)
    laplace = tree.distribution_for_instance(inst, use_laplace=True)
    assert laplace.sum() == pytest.approx(1.0)
    assert (laplace > 0).all() and (laplace < 1).all()


def test_dump_tree():
    data = _play_tennis()
    tree = _grow(data)
    text = tree.dump_tree(data)
    assert text.splitlines() == [
        "outlook = overcast: yes (4.0)",
        "outlook = rainy",
        "|   windy = false: yes (3.0)",
        "|   windy = true: no (2.0)",
        "outlook = sunny",
        "|   humidity = high: no (3.0)",
        "|   humidity = normal: yes (2.0)",
    ]


def test_single_leaf_tree():
    att = [Attribute.numeric('x'), Attribute.nominal('cls', ['A', 'B'])]
    data = Dataset(att, [[1, 0], [2, 0], [3, 1]])
    tree = _grow(data)
    assert tree.is_leaf
    assert tree.num_nodes() == 1
    assert tree.dump_tree(data) == ": A (3.0/1.0)"
    assert list(tree.iter_rules(data)) == [((), 0)]


def _raisable():
    """
    Root splits on 'a' by gain ratio: a=a1 is a small pure group.  The
    big branch a=a0 splits on 'b', which also separates the a1 records;
    'c' is balanced noise in every cell.
    """
    cells = [  # (a, b, class, count)
        (1, 0, 0, 12),
        (0, 0, 0, 16),
        (0, 0, 1, 6),
        (0, 1, 0, 6),
        (0, 1, 1, 16),
    ]
    rows = []
    for a, b, cls, count in cells:
        for i in range(count):
            rows.append([a, b, i % 2, cls])
    att = [Attribute.nominal('a', ['a0', 'a1']),
           Attribute.nominal('b', ['b0', 'b1']),
           Attribute.nominal('c', ['c0', 'c1']),
           Attribute.nominal('cls', ['X', 'Y'])]
    return Dataset(att, rows)


def _walk(node):
    yield node
    if not node.is_leaf:
        for child in node.children:
            yield from _walk(child)


def test_subtree_raising_replaces_node_by_largest_branch():
    data = _raisable()
    tree = _grow(data)
    tree.collapse()
    assert tree.local_model.attribute_index == 0
    assert tree.num_nodes() == 5
    raised_model = tree.children[0].local_model
    assert raised_model.attribute_index == 1

    tree.prune()
    assert tree.local_model is raised_model
    assert tree.num_leaves() == 2
    assert tree.num_nodes() == 3
    # the raised split now sees every record, a1 included
    assert tree.local_model.distribution.per_bag(0) == pytest.approx(34)
    assert tree.local_model.distribution.per_bag(1) == pytest.approx(22)
    for node in _walk(tree):
        assert node.local_model.distribution.total() == pytest.approx(node.data.sum_of_weights())


def test_no_raising_keeps_the_original_root():
    data = _raisable()
    selection = ModelSelection(2, data)
    tree = TreeNode(selection, subtree_raising=False).build(data, keep_data=False)
    tree.collapse()
    tree.prune()
    assert tree.local_model.attribute_index == 0
    assert tree.num_nodes() == 5
