"""
Weather Obs Sensors - Ground Radar
==================================

Precipitation-rate radar operated from HQ radar sites.

Coverage:
---------
A grid cell is observed when it lies within radius_km of any radar site
listed in context.extras["sensor_gating"]["radar_sites"]:
    [{"lat_rad": float, "lon_rad": float, "radius_km": float}, ...]
Without radar sites the sensor produces nothing.

Observation Model:
------------------
    precip_obs = max(0, precip_truth + 0.03 * N(0, 1))

with deterministic noise seeded by (world seed, sensor id,
floor(t / cadence), cell index). Uncovered cells are 0 with mask 0.

Service-area coverage (coveredFracService) is the cos(lat)-weighted share
of cells within 2500 km of a site that the radar actually covers.
"""

import numpy as np
from typing import Any, Mapping, Optional
import logging

from .base import CadenceSensor, NoiseSpec, ObservationContext, ObservationSet, Product
from .noise import gaussian01, make_sample_seed
from .surface import equirect_distance_km

logger = logging.getLogger(__name__)

RADAR_CADENCE_SECONDS = 300
RADAR_NOISE_SIGMA = 0.03
SERVICE_RADIUS_KM = 2500.0


class RadarSensor(CadenceSensor):
    """
    Gridded precipitation radar (product "precipRate", mm/hr).

    Example:
    --------
    >>> radar = RadarSensor(world_seed=42)
    >>> context = ObservationContext(
    ...     truth_state=truth, sim_time_seconds=600.0,
    ...     extras={"sensor_gating": {"radar_sites": [site]}})
    >>> obs = radar.observe(context)
    >>> obs.products["precipRate"].meta["coveredCellCount"]
    """

    def __init__(self, world_seed: Any = 0, sensor_id: str = "hqRadar"):
        super().__init__(sensor_id, cadence_seconds=RADAR_CADENCE_SECONDS, observes=("precipRate",))
        try:
            seed = float(world_seed)
        except (TypeError, ValueError):
            seed = 0.0
        self.world_seed = seed if np.isfinite(seed) else 0.0

    def noise_model(self, product: Optional[str] = None) -> NoiseSpec:
        return NoiseSpec(bias=0.0, sigma_obs=RADAR_NOISE_SIGMA, kind="add")

    def observe(self, context: ObservationContext) -> Optional[ObservationSet]:
        truth = context.truth_state
        if not isinstance(truth, Mapping) or not truth.get("ready"):
            return None
        grid = truth.get("grid")
        state = truth.get("state")
        if not isinstance(grid, Mapping) or not isinstance(state, Mapping):
            return None
        precip = state.get("precipRate")
        if precip is None:
            return None

        gating = context.extras.get("sensor_gating") or {}
        sites = gating.get("radar_sites") or []
        if not isinstance(sites, (list, tuple)) or not sites:
            return None

        nx = grid.get("nx")
        ny = grid.get("ny")
        if not nx or not ny:
            return None
        precip_field = np.asarray(precip, dtype=np.float64).reshape(ny, nx)

        lat_deg = 90.0 - (np.arange(ny) + 0.5) * (180.0 / ny)
        lon_deg = -180.0 + (np.arange(nx) + 0.5) * (360.0 / nx)
        lat_rad, lon_rad = np.meshgrid(np.radians(lat_deg), np.radians(lon_deg), indexing="ij")

        in_radar = np.zeros((ny, nx), dtype=bool)
        in_service = np.zeros((ny, nx), dtype=bool)
        for site in sites:
            dist_km = equirect_distance_km(lat_rad, lon_rad, site["lat_rad"], site["lon_rad"])
            in_radar |= dist_km <= site["radius_km"]
            in_service |= dist_km <= SERVICE_RADIUS_KM

        area_w = np.maximum(0.0, np.cos(lat_rad))
        service_area = float(area_w[in_service].sum())
        covered_area = float(area_w[in_radar].sum())
        covered_frac = covered_area / service_area if service_area > 0 else 0.0

        t_quant = int(np.floor(context.sim_time_seconds / self.cadence_seconds))
        covered_index = np.flatnonzero(in_radar)
        seeds = np.array([
            make_sample_seed(
                world_seed=self.world_seed,
                sensor_id=self.sensor_id,
                t_quant=t_quant,
                index=int(k),
            )
            for k in covered_index
        ], dtype=np.float64)

        values = np.zeros(ny * nx, dtype=np.float32)
        if covered_index.size:
            noisy = precip_field.ravel()[covered_index] + RADAR_NOISE_SIGMA * gaussian01(seeds)
            values[covered_index] = np.maximum(0.0, noisy)
        mask = in_radar.ravel().astype(np.float32)

        covered_cells = int(covered_index.size)
        max_observed = float(values.max()) if covered_cells else 0.0
        logger.debug(
            f"{self.sensor_id}: t={context.sim_time_seconds:.0f}s cells={covered_cells} "
            f"service_frac={covered_frac:.3f} max={max_observed:.2f}mm/hr"
        )

        return ObservationSet(
            sensor_id=self.sensor_id,
            t=context.sim_time_seconds,
            products={
                "precipRate": Product(
                    kind="grid2d",
                    units="mm/hr",
                    data={"value": values},
                    mask=mask,
                    meta={
                        "coveredCellCount": covered_cells,
                        "coveredFracService": covered_frac,
                        "maxPrecipObserved": max_observed,
                    },
                ),
            },
        )
