"""Headless runner: train one engine in continuous mode and print a summary."""

import argparse
import asyncio
import logging
import sys

from .rl import GridWorldQLearning, QLearningConfig, TrainingSpeed
from .regression import LinearRegressionTrainer, RegressionConfig, SCENARIOS
from .kmeans import KMeansClusterer, KMeansConfig, DATASETS


async def _run_to_completion(engine) -> None:
    if not engine.start_continuous():
        raise RuntimeError("engine is already running")
    await engine.wait()


def run_rl(args) -> int:
    config = QLearningConfig(max_episodes=args.episodes, speed=TrainingSpeed.INSTANT)
    engine = GridWorldQLearning(config, seed=args.seed)

    print("🧠 Grid-world Q-learning")
    print("=" * 50)
    print(f"📐 Maze: {engine.grid.size}x{engine.grid.size}")
    print(f"🎯 Start: {engine.grid.start} → Goal: {engine.grid.goal}")
    print(f"   Episodes: {args.episodes}")
    print(f"   Epsilon: {config.epsilon} → {config.epsilon_min}")

    asyncio.run(_run_to_completion(engine))

    print("\n🎉 Training completed!")
    print(f"   Total episodes: {engine.episode}")
    print(f"   Successful episodes: {engine.successful_episodes}")
    print(f"   Success rate: {engine.success_rate:.1%}")
    print(f"   Final epsilon: {engine.epsilon:.3f}")

    path = engine.best_path()
    if path[-1] == engine.grid.goal:
        print(f"✅ Greedy path reaches the goal in {len(path) - 1} moves")
    else:
        print(f"❌ Greedy path stops at {path[-1]} after {len(path) - 1} moves")
    return 0


def run_regression(args) -> int:
    config = RegressionConfig(epochs=args.epochs, speed=0.0, scenario=args.scenario)
    engine = LinearRegressionTrainer(config, seed=args.seed)
    scenario = SCENARIOS[args.scenario]

    print("📈 Linear regression")
    print("=" * 50)
    print(f"   Scenario: {scenario.name} (y = {scenario.true_slope} x + {scenario.true_intercept})")
    print(f"   Samples: {len(engine.xs)}, epochs: {args.epochs}, learning rate: {config.learning_rate}")

    asyncio.run(_run_to_completion(engine))

    print("\n🎉 Training completed!")
    print(f"   Epochs: {engine.epoch}")
    print(f"   Slope: {engine.slope:.4f}")
    print(f"   Intercept: {engine.intercept:.4f}")
    print(f"   MSE: {engine.current_loss:.5f}")
    return 0


def run_kmeans(args) -> int:
    config = KMeansConfig(k=args.k, speed=0.0, dataset=args.dataset)
    engine = KMeansClusterer(config, seed=args.seed)

    print("🔵 K-means clustering")
    print("=" * 50)
    print(f"   Dataset: {args.dataset}, points: {len(engine.points)}, k: {args.k}")

    asyncio.run(_run_to_completion(engine))

    print(f"\n🎉 Clustering {'converged' if engine.converged else 'stopped'}!")
    print(f"   Iterations: {engine.iteration}")
    print(f"   Inertia: {engine.current_inertia:.5f}")
    for cluster_id, (centroid, size) in enumerate(zip(engine.centroids, engine.cluster_sizes())):
        print(f"   Cluster {cluster_id}: ({centroid[0]:.3f}, {centroid[1]:.3f}), {size} points")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mllab", description="Run a learning engine headlessly")
    parser.add_argument("--seed", type=int, help="Random seed for a reproducible run")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log episodes and iterations")
    commands = parser.add_subparsers(dest="command", required=True)

    rl = commands.add_parser("rl", help="Q-learning in the reference maze")
    rl.add_argument("--episodes", type=int, default=500, help="Number of episodes to train")
    rl.set_defaults(func=run_rl)

    regression = commands.add_parser("regression", help="Gradient-descent linear regression")
    regression.add_argument("--epochs", type=int, default=600, help="Number of epochs to train")
    regression.add_argument("--scenario", choices=sorted(SCENARIOS), default="weather")
    regression.set_defaults(func=run_regression)

    kmeans = commands.add_parser("kmeans", help="K-means clustering")
    kmeans.add_argument("--k", type=int, default=3, help="Number of clusters")
    kmeans.add_argument("--dataset", choices=sorted(DATASETS), default="blobs")
    kmeans.set_defaults(func=run_kmeans)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\n⏹️  Interrupted by user")
        return 1
    except ValueError as e:
        print(f"\n❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
