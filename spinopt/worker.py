"""
Background evolution worker and its message protocol.

The controller talks to the worker with two commands and listens for
three events (plus `error` if the run itself blows up):

    commands: {"type": "start", "payload": {...}}    {"type": "stop"}
    events:   progress, complete, stopped

The worker owns the optimizer and all replay state; the only thing shared
with the controller is the run's CancellationToken.
"""
import queue
import random
import threading
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from spinopt.evolutionary_engine import GeneticAlgorithmOptimizer
from spinopt.history import HistoryRecord
from spinopt.run_context import CancellationToken, RunContext

_SHUTDOWN = object()


class OptimizationWorker:
    """
    Single background thread that runs one optimization at a time.

    Events are put on `self.events` as {"type": ..., "payload": ...} and,
    when given, also passed to `on_event`.
    """

    def __init__(self, on_event: Optional[Callable[[Dict[str, Any]], None]] = None,
                 seed: Optional[int] = None,
                 optimizer_factory: Callable[[], GeneticAlgorithmOptimizer] = GeneticAlgorithmOptimizer):
        self.events: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.on_event = on_event
        self.seed = seed
        self.optimizer_factory = optimizer_factory
        self.optimizer: Optional[GeneticAlgorithmOptimizer] = None
        self._commands: "queue.Queue[Any]" = queue.Queue()
        self._active = threading.Event()
        self._idle = threading.Event()
        self._idle.set()
        self._token: Optional[CancellationToken] = None
        self._thread = threading.Thread(target=self._run_loop, name="OptimizationWorker", daemon=True)
        self._thread.start()
        logger.info("OptimizationWorker started.")

    @property
    def is_running(self) -> bool:
        return self._active.is_set()

    def post_message(self, message: Dict[str, Any]):
        """Handles a controller command."""
        message_type = message.get("type")
        if message_type == "start":
            if self._active.is_set():
                logger.warning("Start ignored: an optimization run is already active.")
                return
            self._token = CancellationToken()
            self._active.set()
            self._idle.clear()
            self._commands.put((message.get("payload") or {}, self._token))
        elif message_type == "stop":
            if self._token is not None and not self._token.cancelled:
                logger.info("Stop requested.")
                self._token.cancel()
        else:
            logger.warning(f"Unknown worker message type: {message_type!r}")

    def start(self, history: List[HistoryRecord], prediction_types, terminal_mapping=None, wheel=None):
        self.post_message({
            "type": "start",
            "payload": {
                "history": history,
                "predictionTypes": prediction_types,
                "terminalMapping": terminal_mapping,
                "wheelTopology": wheel,
            },
        })

    def stop(self):
        self.post_message({"type": "stop"})

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    def close(self, timeout: Optional[float] = None):
        """Stops any active run and shuts the worker thread down."""
        self.stop()
        self._commands.put(_SHUTDOWN)
        self._thread.join(timeout)

    def _emit(self, event_type: str, payload: Optional[Dict[str, Any]]):
        event = {"type": event_type, "payload": payload}
        self.events.put(event)
        if self.on_event is not None:
            self.on_event(event)

    def _build_context(self, payload: Dict[str, Any], token: CancellationToken) -> RunContext:
        history = [
            record if isinstance(record, HistoryRecord) else HistoryRecord.from_dict(record)
            for record in payload.get("history") or []
        ]
        return RunContext.create(
            history=history,
            prediction_types=payload.get("predictionTypes") or [],
            wheel_order=payload.get("wheelTopology"),
            terminal_mapping=payload.get("terminalMapping"),
            rng=random.Random(self.seed),
            token=token,
        )

    def _run_loop(self):
        while True:
            command = self._commands.get()
            if command is _SHUTDOWN:
                break
            payload, token = command
            try:
                context = self._build_context(payload, token)
                self.optimizer = self.optimizer_factory()
                self.optimizer.evolve(context, self._emit)
            except Exception as e:
                logger.exception(f"Optimization run failed: {e}")
                self._emit("error", {"message": str(e)})
            finally:
                self._active.clear()
                self._idle.set()
        logger.info("OptimizationWorker shut down.")
