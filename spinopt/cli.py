import argparse
import json
import os
import queue
import sys

from loguru import logger

from spinopt.config import DEFAULT_PARAMETERS, load_config
from spinopt.evolutionary_engine import GeneticAlgorithmOptimizer, format_fitness
from spinopt.loader import load_history, load_params, load_wheel_data
from spinopt.prediction_types import DEFAULT_PREDICTION_TYPES
from spinopt.scoring import StrategyToggles
from spinopt.simulation_engine import FitnessSimulator
from spinopt.wheel import WheelTopology
from spinopt.worker import OptimizationWorker


def setup_logging(config, level=None):
    """Replaces loguru's default sink with a console sink and a rotating file sink."""
    logger.remove()
    level = level or config.get("logging", "level", fallback="INFO")
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
    )
    log_file = config.get("paths", "log_file", fallback="logs/spinopt.log")
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SPINOPT - evolutionary tuning of wheel prediction strategies")
    parser.add_argument("--config", default=os.path.join("config", "config.ini"),
                        help="Path to config.ini (default: config/config.ini)")
    parser.add_argument("--log-level", default=None, help="Console log level override")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- Optimize Command ---
    parser_optimize = subparsers.add_parser("optimize", help="Run the genetic search over recorded history.")
    parser_optimize.add_argument("--history", help="History CSV/JSON (default: [paths] history_file)")
    parser_optimize.add_argument("--wheel-data", help="Wheel/terminal mapping JSON (default: built-in)")
    parser_optimize.add_argument("--generations", type=int, default=None, help="Override max generations.")
    parser_optimize.add_argument("--population", type=int, default=None, help="Override population size.")
    parser_optimize.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run.")
    parser_optimize.add_argument("--output", help="Write the best parameter set to this JSON file.")
    parser_optimize.set_defaults(func=optimize_command)

    # --- Evaluate Command ---
    parser_evaluate = subparsers.add_parser("evaluate", help="Replay history for one parameter set.")
    parser_evaluate.add_argument("--history", help="History CSV/JSON (default: [paths] history_file)")
    parser_evaluate.add_argument("--wheel-data", help="Wheel/terminal mapping JSON (default: built-in)")
    parser_evaluate.add_argument("--params", required=True, help="Parameter set JSON.")
    parser_evaluate.set_defaults(func=evaluate_command)

    # --- Recommend Command ---
    parser_recommend = subparsers.add_parser("recommend", help="Recommend a prediction type for the next spin.")
    parser_recommend.add_argument("--history", help="History CSV/JSON (default: [paths] history_file)")
    parser_recommend.add_argument("--wheel-data", help="Wheel/terminal mapping JSON (default: built-in)")
    parser_recommend.add_argument("--params", help="Parameter set JSON (default: built-in parameters).")
    parser_recommend.add_argument("--num1", type=int, required=True)
    parser_recommend.add_argument("--num2", type=int, required=True)
    parser_recommend.set_defaults(func=recommend_command)
    return parser


def _resolve_inputs(args, config):
    history_file = args.history or config.get("paths", "history_file")
    wheel_file = args.wheel_data or config.get("paths", "wheel_data_file", fallback="") or None
    history = load_history(history_file)
    wheel_order, terminal_mapping = load_wheel_data(wheel_file)
    return history, wheel_order, terminal_mapping


def optimize_command(args, config):
    """Handles the 'optimize' command."""
    history, wheel_order, terminal_mapping = _resolve_inputs(args, config)
    seed = args.seed
    if seed is None:
        configured_seed = config.get("optimizer", "seed", fallback="").strip()
        seed = int(configured_seed) if configured_seed else None

    overrides = {}
    if args.generations is not None:
        overrides["num_generations"] = args.generations
    if args.population is not None:
        overrides["population_size"] = args.population

    worker = OptimizationWorker(seed=seed, optimizer_factory=lambda: GeneticAlgorithmOptimizer(**overrides))
    worker.start(history, DEFAULT_PREDICTION_TYPES, terminal_mapping, wheel_order)

    final_event = None
    try:
        while final_event is None:
            try:
                event = worker.events.get(timeout=0.5)
            except queue.Empty:
                continue
            if event["type"] == "progress":
                payload = event["payload"]
                print(f"Generation {payload['generation']}/{payload['maxGenerations']} "
                      f"best fitness {payload['bestFitness']} ({payload['processedCount']} evaluated)")
            else:
                final_event = event
    except KeyboardInterrupt:
        logger.warning("Interrupted. Stopping optimization...")
        worker.stop()
        while final_event is None:
            event = worker.events.get()
            if event["type"] != "progress":
                final_event = event
    finally:
        worker.close(timeout=5)

    if final_event["type"] == "error":
        logger.error(f"Optimization failed: {final_event['payload']['message']}")
        return 1
    if final_event["type"] == "stopped":
        print("Optimization stopped before completion.")
        return 130

    payload = final_event["payload"]
    print("\n--- Best Parameter Set ---")
    print(f"Fitness: {payload['bestFitness']} after {payload['generation']} generations")
    for name, value in payload["bestIndividual"].items():
        print(f"  {name}: {value}")
    if args.output:
        output_dir = os.path.dirname(args.output)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.info(f"Best parameter set written to {args.output}")
    return 0


def evaluate_command(args, config):
    """Handles the 'evaluate' command."""
    history, wheel_order, terminal_mapping = _resolve_inputs(args, config)
    genes = load_params(args.params)
    simulator = FitnessSimulator(DEFAULT_PREDICTION_TYPES, WheelTopology(wheel_order, terminal_mapping))
    result = simulator.run_simulation(genes, history)
    print(f"Wins: {result.wins}")
    print(f"Losses: {result.losses}")
    print(f"Fitness: {format_fitness(result.fitness)}")
    return 0


def _toggles_from_config(config) -> StrategyToggles:
    section = "recommendation"
    return StrategyToggles(
        use_trend_confirmation=config.getboolean(section, "use_trend_confirmation", fallback=True),
        use_weighted_zone=config.getboolean(section, "use_weighted_zone", fallback=True),
        use_proximity_boost=config.getboolean(section, "use_proximity_boost", fallback=True),
        use_dynamic_terminal_neighbour_count=config.getboolean(
            section, "use_dynamic_terminal_neighbour_count", fallback=True
        ),
    )


def recommend_command(args, config):
    """Handles the 'recommend' command."""
    history, wheel_order, terminal_mapping = _resolve_inputs(args, config)
    genes = load_params(args.params) if args.params else dict(DEFAULT_PARAMETERS)
    simulator = FitnessSimulator(DEFAULT_PREDICTION_TYPES, WheelTopology(wheel_order, terminal_mapping))
    recommendation = simulator.recommend_next(genes, history, args.num1, args.num2, _toggles_from_config(config))

    best = recommendation.best_candidate
    if best is None:
        print(recommendation.signal)
        return 0
    print(f"{recommendation.signal}: {best.type.label} (score {best.score:.2f}, "
          f"{best.details.primary_driving_factor})")
    print(f"Hit zone: {sorted(best.hit_zone)}")
    return 0


def main(argv=None) -> int:
    """Main entry point for the SPINOPT CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    setup_logging(config, args.log_level)
    try:
        return args.func(args, config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
