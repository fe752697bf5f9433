import logging
from typing import List

import jax.numpy as jnp

from uraeus.kinematic.evaluators import KinematicEvaluator
from uraeus.kinematic.plants import Context, MultiBodyPlant

logger = logging.getLogger(__name__)


class KinematicEvaluatorSet(object):
    """Ordered collection of kinematic evaluators, stacked into one residual
    vector, one Jacobian matrix and one bias vector.

    Rows are stacked in insertion order. Evaluators can only be appended, so
    the rows of an evaluator never move once it is added. Evaluators can be
    deactivated without being removed, an inactive evaluator contributes no
    rows to the `eval_active*` outputs, while the `eval_full*` outputs always
    hold every row of every evaluator.
    """

    evaluators: List[KinematicEvaluator]

    def __init__(self, plant: MultiBodyPlant):
        self._plant = plant
        self.evaluators = []
        self._enabled = []

    @property
    def plant(self) -> MultiBodyPlant:
        return self._plant

    @property
    def num_evaluators(self) -> int:
        return len(self.evaluators)

    def add_evaluator(self, evaluator: KinematicEvaluator) -> int:
        """Append `evaluator` to the set and return its index."""
        if evaluator.plant is not self._plant:
            raise ValueError(
                f"{type(evaluator).__name__} is defined over plant "
                f"'{evaluator.plant.name}', not '{self._plant.name}'!"
            )

        self.evaluators.append(evaluator)
        self._enabled.append(True)

        index = len(self.evaluators) - 1
        logger.debug(
            "Added %s as evaluator %d, full rows %d to %d",
            type(evaluator).__name__,
            index,
            self.evaluator_full_start(index),
            self.count_full() - 1,
        )
        return index

    def get_evaluator(self, index: int) -> KinematicEvaluator:
        self._check_index(index)
        return self.evaluators[index]

    def set_evaluator_active(self, index: int, active: bool) -> None:
        self._check_index(index)
        self._enabled[index] = bool(active)
        logger.debug(
            "Evaluator %d %s", index, "activated" if active else "deactivated"
        )

    def is_evaluator_active(self, index: int) -> bool:
        self._check_index(index)
        return self._enabled[index]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.evaluators):
            raise ValueError(
                f"Evaluator index {index} is out of range, "
                f"the set holds {len(self.evaluators)} evaluators"
            )

    # -------------------------------------------------------------------------
    # Rows bookkeeping
    # -------------------------------------------------------------------------

    def _active_count(self, index: int) -> int:
        return self.evaluators[index].num_active if self._enabled[index] else 0

    def count_full(self) -> int:
        return sum(e.num_full for e in self.evaluators)

    def count_active(self) -> int:
        return sum(self._active_count(i) for i in range(len(self.evaluators)))

    def evaluator_full_start(self, index: int) -> int:
        """Row of the full outputs where evaluator `index` starts."""
        self._check_index(index)
        return sum(e.num_full for e in self.evaluators[:index])

    def evaluator_active_start(self, index: int) -> int:
        """Row of the active outputs where evaluator `index` starts."""
        self._check_index(index)
        return sum(self._active_count(i) for i in range(index))

    # -------------------------------------------------------------------------
    # Stacked evaluations
    # -------------------------------------------------------------------------

    def _stack_vectors(self, evaluations: List[jnp.ndarray]) -> jnp.ndarray:
        if not evaluations:
            return jnp.zeros((0,))
        return jnp.concatenate(evaluations)

    def _stack_matrices(self, evaluations: List[jnp.ndarray]) -> jnp.ndarray:
        if not evaluations:
            return jnp.zeros((0, self._plant.num_velocities))
        return jnp.vstack(evaluations)

    def _eval_full(self, method: str, context: Context) -> List[jnp.ndarray]:
        self._plant.validate_context(context)
        return [getattr(e, method)(context) for e in self.evaluators]

    def _eval_active(self, method: str, context: Context) -> List[jnp.ndarray]:
        self._plant.validate_context(context)
        return [
            getattr(e, method)(context)
            for e, enabled in zip(self.evaluators, self._enabled)
            if enabled
        ]

    def eval_full(self, context: Context) -> jnp.ndarray:
        evals = self._eval_full("eval_full", context)
        return self._stack_vectors(evals)

    def eval_full_jacobian(self, context: Context) -> jnp.ndarray:
        evals = self._eval_full("eval_full_jacobian", context)
        return self._stack_matrices(evals)

    def eval_full_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        evals = self._eval_full("eval_full_jacobian_dot_times_v", context)
        return self._stack_vectors(evals)

    def eval_full_time_derivative(self, context: Context) -> jnp.ndarray:
        evals = self._eval_full("eval_full_time_derivative", context)
        return self._stack_vectors(evals)

    def eval_active(self, context: Context) -> jnp.ndarray:
        evals = self._eval_active("eval_active", context)
        return self._stack_vectors(evals)

    def eval_active_jacobian(self, context: Context) -> jnp.ndarray:
        evals = self._eval_active("eval_active_jacobian", context)
        return self._stack_matrices(evals)

    def eval_active_jacobian_dot_times_v(self, context: Context) -> jnp.ndarray:
        evals = self._eval_active("eval_active_jacobian_dot_times_v", context)
        return self._stack_vectors(evals)

    def eval_active_time_derivative(self, context: Context) -> jnp.ndarray:
        evals = self._eval_active("eval_active_time_derivative", context)
        return self._stack_vectors(evals)
