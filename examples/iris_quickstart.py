import logging
from time import perf_counter
from sklearn.datasets import load_iris
from sklearn.model_selection import train_test_split
from c45py import C45Classifier

logging.basicConfig(level=logging.INFO)

iris = load_iris()
feats = list(iris.feature_names)
X_train, X_test, y_train, y_test = train_test_split(
    iris.data, iris.target, test_size=0.3, random_state=42, stratify=iris.target
)

clf = C45Classifier(min_samples_leaf=2, cf=0.25, pruning=True, subtree_raising=True,
                    feature_names=feats)

t0 = perf_counter(); clf.fit(X_train, y_train); print(f"fit: {perf_counter()-t0:.3f} s")
print(f"test accuracy: {clf.score(X_test, y_test):.3f}")
clf.print_tree()
for rule in clf.export_rules(class_names=list(iris.target_names)):
    print(rule)
try:
    clf.export_graphviz("iris_tree", class_names=list(iris.target_names), format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
