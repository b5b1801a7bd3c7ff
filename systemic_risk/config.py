"""Model parameters and process configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class ModelParameters(BaseModel):
    """Immutable parameters shared by every firm of a run.

    Construction fails with a ``ValidationError`` (a ``ValueError``) when a
    value is outside its admissible range, so a run can never start with
    an invalid configuration.
    """

    model_config = ConfigDict(frozen=True)

    confidence_level: float = Field(0.95, ge=0.90, le=0.99)
    crisis_threshold: float = Field(0.40, ge=0.05, le=0.99)
    capital_ratio: float = Field(0.08, ge=0.05, le=0.20)
    state_variables_lag: int = Field(1, ge=1)
    run_analysis: bool = False

    @property
    def tail_probability(self) -> float:
        """Left-tail probability a = 1 - k."""
        return 1.0 - self.confidence_level


class Settings(BaseSettings):
    """Batch job configuration.

    All fields are loaded from environment variables (or ``.env``).
    DATA_DIR and RESULTS_DIR point at the CSV input and output directories.
    """

    CONFIDENCE_LEVEL: float = 0.95
    CRISIS_THRESHOLD: float = 0.40
    CAPITAL_RATIO: float = 0.08
    STATE_VARIABLES_LAG: int = 1
    RUN_ANALYSIS: bool = False
    DATA_DIR: str = "data"
    RESULTS_DIR: str = "results"
    N_JOBS: int = 1
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def model_parameters(self) -> ModelParameters:
        """Build the validated, immutable parameter set for a run."""
        return ModelParameters(
            confidence_level=self.CONFIDENCE_LEVEL,
            crisis_threshold=self.CRISIS_THRESHOLD,
            capital_ratio=self.CAPITAL_RATIO,
            state_variables_lag=self.STATE_VARIABLES_LAG,
            run_analysis=self.RUN_ANALYSIS,
        )


def get_settings() -> Settings:
    """Return a Settings instance."""
    return Settings()
