"""Grid-world Q-learning.

A tabular Q-learning agent learns to cross a 10x10 maze. The engine can train
continuously on a paced task, expose each move as four inspectable phases, or
replay the greedy policy it has learned.
"""

from .app.controller import GridWorldQLearning
from .domain.types import Action, CellType, QLearningConfig, RLPhase, TrainingSpeed

__all__ = ["GridWorldQLearning", "Action", "CellType", "QLearningConfig", "RLPhase", "TrainingSpeed"]
