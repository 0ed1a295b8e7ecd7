"""Global configuration — loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class ProcdiagSettings(BaseSettings):
    timeout_seconds: float = 10.0
    kill_grace_seconds: float = 2.0
    log_level: str = "WARNING"

    # JVM tooling: jstack/jmap resolve from $jdk_path/bin when set. Otherwise from
    # the target's own JAVA_HOME, then $jdk_fallback_path, then PATH
    jdk_path: Path | None = None
    jdk_fallback_path: Path | None = Path("/opt/jdk")
    jmap_heap_args: str = "-heap"  # "-histo" on JDK 9+ where -heap is gone

    # Only list processes whose command line contains this text
    name_filter: str = ""

    model_config = {"env_prefix": "PROCDIAG_"}


settings = ProcdiagSettings()
