"""Project version constants.

These constants are used in logs, in the API version endpoint, and embedded in
exported tables (Parquet schema metadata) so that produced artifacts can be
traced back to a specific engine version.
"""

ENGINE_NAME: str = "stormgrid"
ENGINE_VERSION: str = "0.1.0"

FRAME_SCHEMA_VERSION: int = 1
