from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ResolvedModule(BaseModel):
    """A test file that resolved to a module, with its possibly-test names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    module_name: str = Field(..., alias="moduleName", min_length=1)
    possibly_tests: list[str] = Field(default_factory=list, alias="possiblyTests")


class ElmJson(BaseModel):
    """The parts of elm.json that decide where modules live."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["application", "package"]
    source_directories: list[str] = Field(
        default_factory=list,
        alias="source-directories",
        description="Only meaningful for applications; packages always use src/",
    )


class FinderConfig(BaseModel):
    """Tunables for gathering and reading test files."""

    model_config = ConfigDict(validate_assignment=True)

    max_open_files: int = Field(
        default=64,
        description="Upper bound on test files held open at the same time",
        ge=1,
    )
    open_retry_attempts: int = Field(
        default=5,
        description="Attempts to open a file while the OS is out of file descriptors",
        ge=1,
    )
    open_retry_backoff: float = Field(default=0.05, gt=0)
    open_retry_max_backoff: float = Field(default=1.0, gt=0)
    default_test_dir: str = Field(
        default="tests",
        description="Searched when no paths are given on the command line",
        min_length=1,
    )
    skip_dirs: frozenset[str] = Field(
        default=frozenset({"elm-stuff", "node_modules", ".git"}),
        description="Directory names never descended into while gathering",
    )
