"""
Tests for the background worker and its start/stop protocol.
"""
import queue

import pytest

from spinopt.evolutionary_engine import GeneticAlgorithmOptimizer
from spinopt.worker import OptimizationWorker

TIMEOUT = 60


def tiny_optimizer():
    return GeneticAlgorithmOptimizer(num_generations=2, population_size=4, elite_count=1, tournament_size=2)


def long_optimizer():
    return GeneticAlgorithmOptimizer(num_generations=500, population_size=4, elite_count=1, tournament_size=2)


def drain(events):
    collected = []
    while True:
        try:
            collected.append(events.get_nowait())
        except queue.Empty:
            return collected


@pytest.fixture
def make_worker():
    workers = []

    def factory(**kwargs):
        worker = OptimizationWorker(seed=11, **kwargs)
        workers.append(worker)
        return worker

    yield factory
    for worker in workers:
        worker.close(timeout=TIMEOUT)


class TestOptimizationWorker:
    """Test suite for OptimizationWorker."""

    def test_run_to_completion(self, make_worker, default_types, random_history):
        worker = make_worker(optimizer_factory=tiny_optimizer)
        worker.start(random_history, default_types)
        assert worker.wait_until_idle(TIMEOUT)

        events = drain(worker.events)
        types = [event["type"] for event in events]
        assert types == ["progress", "progress", "complete"]
        assert events[-1]["payload"]["generation"] == 2
        assert not worker.is_running

    def test_accepts_dict_history(self, make_worker, default_types, random_history):
        worker = make_worker(optimizer_factory=tiny_optimizer)
        worker.post_message({
            "type": "start",
            "payload": {
                "history": [record.to_dict() for record in random_history],
                "predictionTypes": default_types,
            },
        })
        assert worker.wait_until_idle(TIMEOUT)
        assert drain(worker.events)[-1]["type"] == "complete"

    def test_stop_during_run(self, make_worker, default_types, random_history):
        holder = {}

        def on_event(event):
            if event["type"] == "progress":
                holder["worker"].stop()

        worker = make_worker(on_event=on_event, optimizer_factory=long_optimizer)
        holder["worker"] = worker
        worker.start(random_history, default_types)
        assert worker.wait_until_idle(TIMEOUT)

        types = [event["type"] for event in drain(worker.events)]
        assert types == ["progress", "stopped"]

    def test_second_start_is_ignored(self, make_worker, default_types, random_history):
        holder = {}

        def on_event(event):
            if event["type"] == "progress":
                holder["worker"].stop()

        worker = make_worker(on_event=on_event, optimizer_factory=long_optimizer)
        holder["worker"] = worker
        worker.start(random_history, default_types)
        worker.start(random_history, default_types)
        assert worker.wait_until_idle(TIMEOUT)

        types = [event["type"] for event in drain(worker.events)]
        assert types.count("stopped") == 1
        assert "complete" not in types

    def test_stop_while_idle_is_harmless(self, make_worker):
        worker = make_worker()
        worker.stop()
        assert not worker.is_running
        assert drain(worker.events) == []

    def test_error_event_without_prediction_types(self, make_worker, random_history):
        worker = make_worker(optimizer_factory=tiny_optimizer)
        worker.start(random_history, [])
        assert worker.wait_until_idle(TIMEOUT)

        events = drain(worker.events)
        assert [event["type"] for event in events] == ["error"]
        assert "prediction type" in events[0]["payload"]["message"]

    def test_worker_accepts_runs_after_stop(self, make_worker, default_types, random_history):
        worker = make_worker(optimizer_factory=tiny_optimizer)
        worker.start(random_history, default_types)
        assert worker.wait_until_idle(TIMEOUT)
        drain(worker.events)

        worker.start(random_history, default_types)
        assert worker.wait_until_idle(TIMEOUT)
        assert drain(worker.events)[-1]["type"] == "complete"
