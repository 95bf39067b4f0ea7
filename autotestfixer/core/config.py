"""
Configuration management for the test expectation fixer
"""

import re
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Frames from a JUnit test class: "at com.acme.FooTest.add(FooTest.java:12)"
DEFAULT_TEST_FRAME_PATTERN = r"Test\.java:(\d+)"


class Settings(BaseSettings):
    """Settings loaded from AUTOTESTFIXER_* environment variables or .env"""

    model_config = SettingsConfigDict(
        env_prefix="AUTOTESTFIXER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "INFO"
    log_json: bool = False

    # Stack trace frame pointing into the test source; group 1 is the line number
    test_frame_pattern: str = DEFAULT_TEST_FRAME_PATTERN

    # Where java:test:// class names are looked up, relative to the workspace
    source_roots: List[str] = [
        "src/test/java",
        "src/test/kotlin",
        "src/test/groovy",
        "src/it/java",
    ]
    file_encoding: str = "utf-8"
    autosave: bool = True  # Write files back when a patch transaction commits

    # Command used to re-run the tests after a successful patch
    rerun_command: Optional[str] = None
    rerun_once_per_batch: bool = False

    # Strip the <...> JUnit 5 / AssertJ put around compared values
    unwrap_value_brackets: bool = True

    @field_validator("test_frame_pattern")
    @classmethod
    def validate_test_frame_pattern(cls, value: str) -> str:
        try:
            compiled = re.compile(value)
        except re.error as exc:
            raise ValueError(f"Invalid test_frame_pattern {value!r}: {exc}") from exc
        if compiled.groups < 1:
            raise ValueError(
                "test_frame_pattern must capture the line number in group 1"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


# Global settings instance
settings = Settings()
