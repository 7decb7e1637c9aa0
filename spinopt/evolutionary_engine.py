import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from spinopt.config import (
    CROSSOVER_RATE,
    ELITE_COUNT,
    GENE_DECIMALS,
    MAX_GENERATIONS,
    MUTATION_RATE,
    PARAMETER_SPACE,
    POPULATION_SIZE,
    TOURNAMENT_SIZE,
)
from spinopt.run_context import RunContext
from spinopt.simulation_engine import FitnessSimulator

EventCallback = Callable[[str, Optional[Dict[str, Any]]], None]


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    min: float
    max: float
    step: float

    @property
    def steps(self) -> int:
        """Highest step index k; the grid is min + k*step for k in [0, steps]."""
        return int(round((self.max - self.min) / self.step))

    def value_at(self, k: int) -> float:
        return round(self.min + k * self.step, GENE_DECIMALS)

    def sample(self, rng: random.Random) -> float:
        return self.value_at(rng.randint(0, self.steps))

    def contains(self, value: float) -> bool:
        """True when value sits on this parameter's grid."""
        k = round((value - self.min) / self.step)
        return 0 <= k <= self.steps and self.value_at(k) == round(value, GENE_DECIMALS)


PARAMETER_SPECS: List[ParameterSpec] = [
    ParameterSpec(name, low, high, step) for name, (low, high, step) in PARAMETER_SPACE.items()
]


@dataclass
class Individual:
    genes: Dict[str, float]
    fitness: float = 0.0

    def copy(self) -> "Individual":
        return Individual(genes=dict(self.genes), fitness=self.fitness)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class EvolutionResult:
    state: RunState
    generation: int
    best: Optional[Individual] = None
    population: List[Individual] = field(default_factory=list)


def format_fitness(fitness: float) -> str:
    return f"{fitness:.3f}"


class GeneticAlgorithmOptimizer:
    """
    Generational search over the strategy parameter space.

    Each generation: evaluate every individual with the fitness replay, sort
    best-first, report progress, carry the elite over unchanged and fill the
    rest with tournament-selected, crossed-over and mutated offspring.
    The run context's token is checked before each fitness evaluation,
    inside the replay, and before each offspring.
    """

    def __init__(self, num_generations: int = MAX_GENERATIONS, population_size: int = POPULATION_SIZE,
                 mutation_rate: float = MUTATION_RATE, crossover_rate: float = CROSSOVER_RATE,
                 elite_count: int = ELITE_COUNT, tournament_size: int = TOURNAMENT_SIZE,
                 parameter_specs: Optional[List[ParameterSpec]] = None):
        if elite_count > population_size:
            raise ValueError(f"elite_count ({elite_count}) cannot exceed population_size ({population_size})")
        self.num_generations = num_generations
        self.population_size = population_size
        self.mutation_rate = mutation_rate
        self.crossover_rate = crossover_rate
        self.elite_count = elite_count
        self.tournament_size = tournament_size
        self.parameter_specs = list(parameter_specs or PARAMETER_SPECS)
        self._specs_by_name = {spec.name: spec for spec in self.parameter_specs}
        self.state = RunState.IDLE
        self.population: List[Individual] = []
        logger.info("GeneticAlgorithmOptimizer initialized.")

    def create_individual(self, rng: random.Random) -> Dict[str, float]:
        """Samples every gene independently from its grid."""
        return {spec.name: spec.sample(rng) for spec in self.parameter_specs}

    def _selection(self, population: List[Individual], rng: random.Random) -> Individual:
        """Performs tournament selection (with replacement)."""
        best = None
        for _ in range(self.tournament_size):
            contender = population[rng.randrange(len(population))]
            if best is None or contender.fitness > best.fitness:
                best = contender
        return best

    def _crossover(self, parent1: Dict[str, float], parent2: Dict[str, float],
                   rng: random.Random) -> Dict[str, float]:
        """Uniform crossover: each gene comes from either parent with equal odds."""
        return {key: parent1[key] if rng.random() < 0.5 else parent2[key] for key in parent1}

    def _mutate(self, genes: Dict[str, float], rng: random.Random) -> Dict[str, float]:
        """Re-samples each gene from its full domain with probability mutation_rate."""
        mutated = dict(genes)
        for key in mutated:
            if rng.random() < self.mutation_rate:
                mutated[key] = self._specs_by_name[key].sample(rng)
        return mutated

    def _breed(self, population: List[Individual], rng: random.Random) -> Individual:
        parent1 = self._selection(population, rng)
        parent2 = self._selection(population, rng)
        if rng.random() < self.crossover_rate:
            child = self._crossover(parent1.genes, parent2.genes, rng)
        else:
            child = dict(parent1.genes)
        return Individual(genes=self._mutate(child, rng))

    def _evaluate_population(self, population: List[Individual], context: RunContext,
                             simulator: FitnessSimulator) -> bool:
        for index, individual in enumerate(population):
            if context.token.cancelled:
                return False
            individual.fitness = simulator.calculate_fitness(individual.genes, context.history, context.token)
            logger.debug(f"Generation {context.generation} individual {index}: fitness {individual.fitness:.3f}")
        return not context.token.cancelled

    def _next_generation(self, population: List[Individual], context: RunContext) -> Optional[List[Individual]]:
        next_population = [individual.copy() for individual in population[:self.elite_count]]
        while len(next_population) < self.population_size:
            if context.token.cancelled:
                return None
            next_population.append(self._breed(population, context.rng))
        return next_population

    def _stopped(self, context: RunContext, on_event: EventCallback) -> EvolutionResult:
        self.state = RunState.STOPPED
        logger.info(f"Evolution stopped during generation {context.generation}.")
        on_event("stopped", None)
        return EvolutionResult(RunState.STOPPED, context.generation, population=self.population)

    def evolve(self, context: RunContext, on_event: Optional[EventCallback] = None) -> EvolutionResult:
        """
        Runs the search until max generations or until the token is cancelled.

        :param context: Per-run history snapshot, wheel data, random source and token.
        :param on_event: Receives ("progress", payload), then exactly one of
                         ("complete", payload) or ("stopped", None).
        :return: EvolutionResult with the final state and best individual.
        """
        on_event = on_event or (lambda event_type, payload: None)
        rng = context.rng
        simulator = FitnessSimulator(context.prediction_types, context.wheel)

        self.state = RunState.RUNNING
        context.generation = 0
        self.population = [Individual(genes=self.create_individual(rng)) for _ in range(self.population_size)]
        logger.info(
            f"Starting evolution: {self.num_generations} generations x {self.population_size} individuals "
            f"over {len(context.history)} history records..."
        )

        while context.generation < self.num_generations:
            context.generation += 1

            if not self._evaluate_population(self.population, context, simulator):
                return self._stopped(context, on_event)

            self.population.sort(key=lambda individual: individual.fitness, reverse=True)
            best = self.population[0]
            on_event("progress", {
                "generation": context.generation,
                "maxGenerations": self.num_generations,
                "bestFitness": format_fitness(best.fitness),
                "bestIndividual": dict(best.genes),
                "processedCount": context.generation * self.population_size,
            })
            logger.info(
                f"Completed generation {context.generation}/{self.num_generations}: "
                f"best fitness {format_fitness(best.fitness)}"
            )

            next_population = self._next_generation(self.population, context)
            if next_population is None:
                return self._stopped(context, on_event)
            self.population = next_population

        if context.token.cancelled:
            return self._stopped(context, on_event)

        self.state = RunState.COMPLETED
        best = self.population[0]
        on_event("complete", {
            "generation": context.generation,
            "bestFitness": format_fitness(best.fitness),
            "bestIndividual": dict(best.genes),
        })
        logger.info(f"Evolution complete. Best fitness {format_fitness(best.fitness)}")
        return EvolutionResult(RunState.COMPLETED, context.generation, best=best.copy(), population=self.population)
