import os
import numpy as np
import pytest
from sklearn.base import clone
from c45py import C45Classifier

FEATURES = ['outlook', 'temperature', 'humidity', 'windy']


def _play_tennis():
    """Return Quinlan's weather data as an object array and its labels."""
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
    return arr[:, :4], arr[:, 4]


def _tennis_clf(**kwargs):
    X, y = _play_tennis()
    clf = C45Classifier(feature_names=FEATURES, categorical_features=[0, 1, 2, 3], **kwargs)
    return clf.fit(X, y)


def _numeric_dataset():
    """Values 1, 2, 2, 3, 5, 9 with classes A, A, A, B, B, B."""
    X = np.array([[1.0], [2.0], [2.0], [3.0], [5.0], [9.0]])
    y = np.array(['A', 'A', 'A', 'B', 'B', 'B'])
    return X, y


def test_play_tennis_fit_predict():
    X, y = _play_tennis()
    clf = _tennis_clf()
    assert clf.score(X, y) == 1.0
    assert clf.leaf_count() == 5
    assert clf.node_count() == 8
    assert list(clf.classes_) == ['no', 'yes']
    assert clf.n_features_in_ == 4


def test_render():
    clf = _tennis_clf()
    text = clf.render()
    lines = text.splitlines()
    assert lines[0] == "C4.5 pruned tree"
    assert "outlook = overcast: yes (4.0)" in lines
    assert "|   humidity = high: no (3.0)" in lines
    assert "Number of Leaves  : \t5" in lines
    assert "Size of the tree : \t8" in lines
    assert str(clf) == text
    assert _tennis_clf(pruning=False).render().startswith("C4.5 unpruned tree")


def test_print_tree(capsys):
    clf = _tennis_clf()
    clf.print_tree()
    out = capsys.readouterr().out
    assert "outlook = sunny" in out


def test_export_rules():
    clf = _tennis_clf()
    rules = clf.export_rules()
    assert len(rules) == clf.leaf_count()
    assert "outlook = overcast => yes" in rules
    assert "outlook = rainy AND windy = true => no" in rules
    named = clf.export_rules(class_names=['stay', 'play'])
    assert "outlook = sunny AND humidity = normal => play" in named


def test_numeric_threshold_is_a_training_value():
    X, y = _numeric_dataset()
    clf = C45Classifier().fit(X, y)
    assert clf.export_rules() == ["f0 <= 2 => A", "f0 > 2 => B"]
    assert list(clf.predict([[2.4], [2.0], [100.0]])) == ['B', 'A', 'B']


def test_missing_value_is_split_by_branch_weight():
    X, y = _numeric_dataset()
    clf = C45Classifier().fit(X, y)
    proba = clf.predict_proba([[np.nan], [None]])
    assert np.allclose(proba, [[0.5, 0.5], [0.5, 0.5]])
    assert np.allclose(clf.class_distribution([np.nan]), [0.5, 0.5])


def test_classify_returns_class_index():
    clf = _tennis_clf()
    assert clf.classify(['overcast', 'cool', 'high', 'true']) == 1
    assert clf.classify(['sunny', 'cool', 'high', 'true']) == 0


def test_proba_sums_to_one_with_laplace():
    X, y = _play_tennis()
    clf = _tennis_clf(laplace=True)
    proba = clf.predict_proba(X)
    assert proba.shape == (14, 2)
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert (proba > 0).all() and (proba < 1).all()


def test_training_with_missing_values():
    X = np.array([[1, 'A'], [2, None], [3, 'B'], [None, 'A'],
                  [5, 'B'], [6, 'B'], [1.5, 'A'], [2.5, None]], dtype=object)
    y = np.array([0, 0, 1, 1, 1, 1, 0, 0])
    clf = C45Classifier(min_samples_leaf=1, feature_names=['num', 'cat'],
                        categorical_features=['cat'])
    clf.fit(X, y)
    proba = clf.predict_proba(X)
    assert np.allclose(proba.sum(axis=1), 1.0)
    assert len(clf.predict(X)) == len(y)


def test_missing_class_rows_are_dropped():
    X, y = _numeric_dataset()
    X = np.vstack([X, [[4.0]]])
    y = np.array(list(y) + [None], dtype=object)
    clf = C45Classifier().fit(X, y)
    assert list(clf.classes_) == ['A', 'B']
    assert clf.leaf_count() == 2


def test_sample_weight_changes_majority():
    X = np.array([[1.0], [1.0], [1.0]])
    y = np.array([0, 1, 1])
    clf = C45Classifier().fit(X, y, sample_weight=[5.0, 1.0, 1.0])
    assert clf.predict([[1.0]])[0] == 0


def test_keep_data():
    clf = _tennis_clf(keep_data=True)
    assert len(clf.tree_.data) == 14
    clf = _tennis_clf()
    assert len(clf.tree_.data) == 0


def test_not_fitted_raises():
    clf = C45Classifier()
    with pytest.raises(ValueError):
        clf.predict([[1.0]])
    with pytest.raises(ValueError):
        clf.render()


def test_invalid_parameters():
    X, y = _numeric_dataset()
    with pytest.raises(ValueError):
        C45Classifier(min_samples_leaf=0).fit(X, y)
    with pytest.raises(ValueError):
        C45Classifier(cf=0).fit(X, y)


def test_high_confidence_warns():
    X, y = _numeric_dataset()
    with pytest.warns(RuntimeWarning):
        C45Classifier(cf=0.75).fit(X, y)


def test_unroutable_records_raise():
    clf = _tennis_clf()
    with pytest.raises(ValueError):
        clf.predict([['foggy', 'hot', 'high', 'false']])
    with pytest.raises(ValueError):
        clf.predict([['sunny', 'hot']])


def test_empty_training_set_raises():
    X = np.array([[1.0], [2.0]])
    y = np.array([None, None], dtype=object)
    with pytest.raises(ValueError):
        C45Classifier().fit(X, y)


def test_clone_keeps_parameters():
    clf = C45Classifier(cf=0.1, min_samples_leaf=3, categorical_features=[0])
    params = clone(clf).get_params()
    assert params['cf'] == 0.1
    assert params['min_samples_leaf'] == 3
    assert params['categorical_features'] == [0]


def test_graphviz_export(tmp_path):
    pytest.importorskip("graphviz")
    clf = _tennis_clf()
    source = clf.export_graphviz()
    assert "outlook" in source
    out_path = clf.export_graphviz(str(tmp_path / "tree"), format="dot")
    assert out_path.endswith(".dot")
    assert os.path.exists(out_path)


def test_zero_total_weight_raises():
    with pytest.raises(ValueError):
        C45Classifier().fit([[1.0], [2.0], [3.0]], [0, 1, 1], sample_weight=[0, 0, 0])
