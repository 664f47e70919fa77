"""
Weather Obs Sensors - Surface Station Network
=============================================

A network of fixed surface stations reporting surface pressure (ps).

Station Layout:
---------------
N stations placed deterministically from the world seed:
    lat = LAT_MIN + (LAT_MAX - LAT_MIN) * hash01(seed + i * 12.9898)
    lon = -180 + 360 * hash01(seed + i * 78.233)

Validity (comms gating):
------------------------
- has_comms            -> every station reports
- otherwise            -> stations within GROUND_ACCESS_RADIUS_KM of any HQ site
- no gating / no HQs   -> nothing reports (mask all zero)

Observation Model:
------------------
    ps_obs = bilinear(ps_truth, i, j) + bias + sigma * N(0, 1)

with deterministic noise seeded by (world seed, sensor id,
floor(t / cadence), station index). Dense-surface mode lowers sigma
to 50 Pa and widens the reported station radius to 450 km.

Truth State:
------------
observe() expects context.truth_state to be a mapping:
    {"ready": True,
     "grid": {"nx": int, "ny": int, "cell_lon_deg": float, "cell_lat_deg": float},
     "state": {"ps": ndarray of shape (ny, nx) or (ny * nx,)}}
Row 0 is the northernmost latitude band; column 0 starts at -180 degrees.
"""

import numpy as np
from typing import Any, Dict, Mapping, Optional
import logging

from .base import CadenceSensor, NoiseSpec, ObservationContext, ObservationSet, Product
from .noise import gaussian01, hash01, make_sample_seed

logger = logging.getLogger(__name__)

N_STATIONS = 400
STATION_LAT_MIN = -70.0
STATION_LAT_MAX = 70.0
STATION_RADIUS_KM = 300.0
DENSE_STATION_RADIUS_KM = 450.0
GROUND_ACCESS_RADIUS_KM = 1500.0
EARTH_RADIUS_KM = 6371.0

PS_SIGMA_PA = 80.0
DENSE_PS_SIGMA_PA = 50.0


def wrap_lon(lon_deg: np.ndarray) -> np.ndarray:
    """Wrap longitudes to [-180, 180)."""
    return np.mod(np.mod(lon_deg + 180.0, 360.0) + 360.0, 360.0) - 180.0


def wrap_rad_to_pi(rad: np.ndarray) -> np.ndarray:
    """Wrap angles to [-pi, pi)."""
    two_pi = 2.0 * np.pi
    return np.mod(np.mod(rad + np.pi, two_pi) + two_pi, two_pi) - np.pi


def equirect_distance_km(lat0_rad, lon0_rad, lat1_rad, lon1_rad):
    """Equirectangular-approximation distance between points [km]."""
    d_lat = lat1_rad - lat0_rad
    d_lon = wrap_rad_to_pi(lon1_rad - lon0_rad)
    x = d_lon * np.cos((lat0_rad + lat1_rad) * 0.5)
    return EARTH_RADIUS_KM * np.sqrt(x * x + d_lat * d_lat)


def bilinear(field: np.ndarray, i_f: np.ndarray, j_f: np.ndarray) -> np.ndarray:
    """
    Bilinear interpolation on a (ny, nx) grid.

    Longitude index wraps around; latitude index clamps to the grid.

    Args:
        field: 2-D array indexed [j, i]
        i_f: Fractional longitude index
        j_f: Fractional latitude index

    Returns:
        Interpolated values, same shape as i_f
    """
    ny, nx = field.shape
    i_wrapped = np.mod(np.mod(i_f, nx) + nx, nx)
    j_clamped = np.clip(j_f, 0, ny - 1)

    i0 = np.floor(i_wrapped).astype(int) % nx
    j0 = np.floor(j_clamped).astype(int)
    i1 = (i0 + 1) % nx
    j1 = np.minimum(ny - 1, j0 + 1)
    fi = i_wrapped - np.floor(i_wrapped)
    fj = j_clamped - j0

    v_top = field[j0, i0] * (1 - fi) + field[j0, i1] * fi
    v_bot = field[j1, i0] * (1 - fi) + field[j1, i1] * fi
    return v_top * (1 - fj) + v_bot * fj


class SurfaceStationSensor(CadenceSensor):
    """
    Surface pressure station network (points product "ps", Pa).

    Example:
    --------
    >>> sensor = SurfaceStationSensor(world_seed=42)
    >>> sensor.is_due(0.0)
    True
    >>> obs = sensor.observe(context)
    >>> obs.products["ps"].data["value"].shape
    (400,)
    """

    def __init__(self, world_seed: Any = 0, n_stations: int = N_STATIONS):
        """
        Initialize station network.

        Args:
            world_seed: World seed (non-finite or non-numeric falls back to 0)
            n_stations: Number of stations
        """
        super().__init__("surfaceStations", cadence_seconds=300, observes=("ps",))
        try:
            seed = float(world_seed)
        except (TypeError, ValueError):
            seed = 0.0
        self.world_seed = seed if np.isfinite(seed) else 0.0
        self.n_stations = n_stations
        self.station_radius_km = STATION_RADIUS_KM

        seed_base = self.world_seed + 1001
        index = np.arange(n_stations, dtype=np.float64)
        lat_span = STATION_LAT_MAX - STATION_LAT_MIN
        self.station_lat_deg = (
            STATION_LAT_MIN + lat_span * hash01(seed_base + index * 12.9898)
        ).astype(np.float32)
        self.station_lon_deg = (
            -180.0 + 360.0 * hash01(seed_base + index * 78.233)
        ).astype(np.float32)

    def noise_model(self, product: Optional[str] = None) -> NoiseSpec:
        return NoiseSpec(bias=0.0, sigma_obs=PS_SIGMA_PA, kind="add")

    def observe(self, context: ObservationContext) -> Optional[ObservationSet]:
        truth = context.truth_state
        if not isinstance(truth, Mapping) or not truth.get("ready"):
            return None
        grid = truth.get("grid")
        state = truth.get("state")
        if not isinstance(grid, Mapping) or not isinstance(state, Mapping):
            return None
        ps = state.get("ps")
        if ps is None:
            return None

        nx = grid.get("nx")
        ny = grid.get("ny")
        cell_lon_deg = grid.get("cell_lon_deg")
        cell_lat_deg = grid.get("cell_lat_deg")
        if not nx or not ny or not cell_lon_deg or not cell_lat_deg:
            return None

        ps_field = np.asarray(ps, dtype=np.float64).reshape(ny, nx)
        gating = context.extras.get("sensor_gating") or {}

        dense = gating.get("dense_surface") is True
        station_radius_km = DENSE_STATION_RADIUS_KM if dense else STATION_RADIUS_KM
        noise_cfg = self.noise_model("ps")
        sigma_value = DENSE_PS_SIGMA_PA if dense else noise_cfg.sigma_obs
        self.station_radius_km = station_radius_km

        lat = self.station_lat_deg.astype(np.float64)
        lon = wrap_lon(self.station_lon_deg.astype(np.float64))
        valid = self._valid_mask(lat, lon, gating)

        i_f = (lon + 180.0) / cell_lon_deg - 0.5
        j_f = (90.0 - lat) / cell_lat_deg - 0.5
        ps_truth = bilinear(ps_field, i_f, j_f)

        t_quant = int(np.floor(context.sim_time_seconds / self.cadence_seconds))
        seeds = np.array([
            make_sample_seed(
                world_seed=self.world_seed,
                sensor_id=self.sensor_id,
                t_quant=t_quant,
                index=i,
            )
            for i in range(self.n_stations)
        ], dtype=np.float64)
        noise = gaussian01(seeds)

        values = np.where(valid, ps_truth + noise_cfg.bias + sigma_value * noise, 0.0)
        mask = valid.astype(np.float32)
        sigma_obs = np.full(self.n_stations, sigma_value, dtype=np.float32)

        logger.debug(
            f"{self.sensor_id}: t={context.sim_time_seconds:.0f}s "
            f"valid={int(valid.sum())}/{self.n_stations}"
        )

        return ObservationSet(
            sensor_id=self.sensor_id,
            t=context.sim_time_seconds,
            products={
                "ps": Product(
                    kind="points",
                    units="Pa",
                    data={
                        "lat_deg": self.station_lat_deg,
                        "lon_deg": self.station_lon_deg,
                        "value": values.astype(np.float32),
                    },
                    mask=mask,
                    sigma_obs=sigma_obs,
                    meta={
                        "station_radius_km": station_radius_km,
                        "n_stations": self.n_stations,
                    },
                ),
            },
        )

    def _valid_mask(self,
                    lat_deg: np.ndarray,
                    lon_deg: np.ndarray,
                    gating: Dict[str, Any]) -> np.ndarray:
        """Stations that can report under the current comms gating."""
        if gating.get("has_comms") is True:
            return np.ones(self.n_stations, dtype=bool)

        valid = np.zeros(self.n_stations, dtype=bool)
        hq_sites = gating.get("hq_sites") or []
        if not isinstance(hq_sites, (list, tuple)):
            return valid

        lat_rad = np.radians(lat_deg)
        lon_rad = np.radians(lon_deg)
        for hq in hq_sites:
            dist_km = equirect_distance_km(lat_rad, lon_rad, hq["lat_rad"], hq["lon_rad"])
            valid |= dist_km <= GROUND_ACCESS_RADIUS_KM
        return valid
