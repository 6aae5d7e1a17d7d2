"""ML Lab - interactive learning-algorithm engines.

This package implements three classic learning algorithms (tabular Q-learning in a
grid maze, gradient-descent linear regression and k-means clustering), each of which
can run continuously on a paced background task or be advanced phase by phase so the
intermediate arithmetic can be inspected.
"""

__version__ = "1.0.0"
__author__ = "ML Lab"
