"""
Semi-Global Cost Aggregator

Aggregates matching costs along 1-D paths with the semi-global matching recurrence.
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple
import logging

from ..data_models import CostVolume
from ..exceptions import InvalidConfigurationError
from ..utils.config_manager import ConfigManager


# (dx, dy) steps; a path visits p, p + r, p + 2r, ...
REDUCED_DIRECTIONS = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
)

FULL_DIRECTIONS = REDUCED_DIRECTIONS + (
    (1, 1), (-1, -1), (1, -1), (-1, 1),
)


class SemiGlobalAggregator:
    """Multi-directional dynamic-programming cost aggregation."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize aggregator.

        Args:
            config_manager: Configuration manager instance
        """
        self.config = config_manager or ConfigManager()
        self.logger = logging.getLogger(__name__)

        sgbm_config = self.config.get_sgbm_params()

        # Smoothness penalties: P1 for a one-level change, P2 for any larger jump
        self.P1 = float(sgbm_config.get('P1', 400))
        self.P2 = float(sgbm_config.get('P2', 1600))
        if self.P2 < self.P1:
            raise InvalidConfigurationError("P2 must be greater than or equal to P1")

        self.mode = sgbm_config.get('mode', 'full')
        self.max_workers = sgbm_config.get('max_workers', 4)

        self.logger.info(f"SGM aggregator initialized: mode={self.mode} ({len(self.directions)} paths), "
                         f"P1={self.P1:g}, P2={self.P2:g}")

    @property
    def directions(self) -> Tuple[Tuple[int, int], ...]:
        """Path directions for the configured mode."""
        return FULL_DIRECTIONS if self.mode == 'full' else REDUCED_DIRECTIONS

    def aggregate(self, cost_volume: CostVolume) -> CostVolume:
        """
        Sum path costs over all configured directions.

        The recurrence only runs over the columns whose search range is fully
        inside the target image; cells outside keep their raw cost scaled by
        the number of paths.

        Args:
            cost_volume: Raw matching costs

        Returns:
            Aggregated cost volume with the same shape and metadata
        """
        start, stop = cost_volume.valid_x_start, cost_volume.valid_x_stop
        directions = self.directions

        aggregated = cost_volume.costs * np.float32(len(directions))

        if start < stop:
            strip = cost_volume.costs[:, start:stop, :]
            # Path costs are summed straight into the output strip
            total = aggregated[:, start:stop, :]
            total[...] = 0

            if self.max_workers > 1:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    # At most max_workers path buffers are alive at once
                    for batch_start in range(0, len(directions), self.max_workers):
                        batch = directions[batch_start:batch_start + self.max_workers]
                        futures = [executor.submit(self._aggregate_direction, strip, r) for r in batch]
                        for future in futures:
                            total += future.result()
                        del futures
            else:
                for direction in directions:
                    total += self._aggregate_direction(strip, direction)

        self.logger.debug(f"Aggregated {len(directions)} paths over columns [{start}, {stop})")

        return CostVolume(
            costs=aggregated,
            min_disparity=cost_volume.min_disparity,
            max_cost=cost_volume.max_cost,
            valid_x_start=start,
            valid_x_stop=stop,
            texture=cost_volume.texture
        )

    def _aggregate_direction(self, costs: np.ndarray, direction: Tuple[int, int]) -> np.ndarray:
        """
        Path costs L_r for a single direction.

        Args:
            costs: H x W x D raw costs
            direction: (dx, dy) step

        Returns:
            H x W x D path costs
        """
        dx, dy = direction

        if dx == 0:
            # Vertical paths become horizontal ones on the transposed volume
            transposed = self._aggregate_direction(costs.transpose(1, 0, 2), (dy, 0))
            return transposed.transpose(1, 0, 2)

        width = costs.shape[1]
        path_costs = np.empty_like(costs)
        columns = range(width) if dx > 0 else range(width - 1, -1, -1)

        previous = None
        for x in columns:
            current = costs[:, x, :]

            if previous is None:
                path_costs[:, x, :] = current
            else:
                # Row y continues the path from row y - dy of the previous column
                predecessor = previous if dy == 0 else np.roll(previous, dy, axis=0)
                step = self._path_step(current, predecessor)

                # Rows whose predecessor lies outside the image start a new path
                if dy > 0:
                    step[:dy] = current[:dy]
                elif dy < 0:
                    step[dy:] = current[dy:]

                path_costs[:, x, :] = step

            previous = path_costs[:, x, :]

        return path_costs

    def _path_step(self, current: np.ndarray, predecessor: np.ndarray) -> np.ndarray:
        """
        One step of the recurrence for a batch of pixels.

        L(p, d) = C(p, d) + min(L(p-r, d), L(p-r, d +- 1) + P1, min_k L(p-r, k) + P2) - min_k L(p-r, k)

        Args:
            current: N x D raw costs at p
            predecessor: N x D path costs at p - r

        Returns:
            N x D path costs at p
        """
        previous_min = predecessor.min(axis=1, keepdims=True)

        neighbours = np.full_like(predecessor, np.inf)
        neighbours[:, 1:] = predecessor[:, :-1]
        neighbours[:, :-1] = np.minimum(neighbours[:, :-1], predecessor[:, 1:])

        best = np.minimum(predecessor, neighbours + np.float32(self.P1))
        best = np.minimum(best, previous_min + np.float32(self.P2))

        return current + best - previous_min
