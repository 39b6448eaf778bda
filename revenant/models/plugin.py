"""
Plugin models.

A PluginSpec is what the user declares in their config file:
  {"name": "telescope.nvim",
   "repo": "https://github.com/nvim-telescope/telescope.nvim",
   "commit": "<40-char sha>",
   "dependencies": ["plenary.nvim"]}

An InstalledRecord is what the lock file remembers about a plugin that is
present on disk.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class PluginSpec(BaseModel):
    """A declared plugin at an exact commit."""

    name: str
    repo: str  # HTTPS GitHub URL
    commit: str  # 40-char SHA-1
    dependencies: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("dependencies", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def short_commit(self) -> str:
        return self.commit[:8]


class InstalledRecord(BaseModel):
    """A plugin recorded as installed in the lock file."""

    name: str
    repo: str
    commit: str  # Commit actually checked out
    installed_at: str = Field(alias="installedAt")  # ISO timestamp
    path: str  # Absolute path on disk

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @classmethod
    def from_spec(cls, spec: PluginSpec, path: str, installed_at: str) -> "InstalledRecord":
        return cls(
            name=spec.name,
            repo=spec.repo,
            commit=spec.commit,
            installed_at=installed_at,
            path=path,
        )

    def to_spec(self) -> PluginSpec:
        """The declaration this record was installed from (dependencies unknown)."""
        return PluginSpec(name=self.name, repo=self.repo, commit=self.commit)

    def matches(self, spec: PluginSpec) -> bool:
        """True if this record already describes ``spec`` at its target commit."""
        return (
            self.repo == spec.repo
            and self.commit.lower() == spec.commit.lower()
        )


def find_spec(specs: list[PluginSpec], name: str) -> Optional[PluginSpec]:
    """Look up a declared plugin by name."""
    for spec in specs:
        if spec.name == name:
            return spec
    return None
