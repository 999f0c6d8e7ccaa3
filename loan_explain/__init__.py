"""
Slide generator for a talk on machine-learning interpretability.

The package loads the German credit dataset, fits a logistic regression and
a random forest, and renders explanatory charts (coefficients, a forest
tree, permutation importance, partial dependence, LIME, Shapley values)
into a PowerPoint deck. All explanation methods come from scikit-learn,
lime and shap; the code here only reshapes their output for slides.
"""

__version__ = "0.1.0"
