"""Pipeline configuration for hostpulse."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    """Sampling cadence and smoothing parameters."""

    sample_interval: float = 0.03  # seconds; sampler tick and aggregator poll tick
    emit_interval: float = 1.5  # seconds between aggregated snapshots
    ema_alpha: float = 0.3  # lower is smoother
    top_n: int = 10

    def __post_init__(self) -> None:
        """Validate the configuration values."""
        if self.sample_interval <= 0:
            raise ValueError(f"sample_interval must be positive, got {self.sample_interval}")
        if self.emit_interval <= 0:
            raise ValueError(f"emit_interval must be positive, got {self.emit_interval}")
        if not 0.0 < self.ema_alpha <= 1.0:
            raise ValueError(f"ema_alpha must be in (0, 1], got {self.ema_alpha}")
        if self.top_n < 1:
            raise ValueError(f"top_n must be at least 1, got {self.top_n}")


DEFAULT_CONFIG = PipelineConfig()
