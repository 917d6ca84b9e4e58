"""Project state model for the studio workspace.

The whole workspace is one ``ProjectState`` value. Field names are snake_case
in Python and camelCase on the wire (HTTP, WebSocket, persisted JSON).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WELCOME_LOG = "Welcome to Agentic Studio Pro. Define your intent to begin."
PLACEHOLDER_CONTENT = "// Coding in progress..."
REQUIRED_FILES = ("src/App.tsx", "src/lib/mockData.ts")


class AgentStatus(str, Enum):
    IDLE = "idle"
    MANAGING = "managing"
    PLANNING = "planning"
    DESIGNING = "designing"
    ARCHITECTING = "architecting"
    CODING = "coding"
    REVIEWING = "reviewing"
    COMPILING = "compiling"
    HEALING = "healing"
    READY = "ready"
    ERROR = "error"


# Allowed next statuses for every status. Reset (-> idle) and rollback
# (-> ready) are forced commands and do not go through this table.
TRANSITIONS: Dict[AgentStatus, FrozenSet[AgentStatus]] = {
    AgentStatus.IDLE: frozenset({AgentStatus.MANAGING}),
    AgentStatus.MANAGING: frozenset({AgentStatus.PLANNING, AgentStatus.ERROR}),
    AgentStatus.PLANNING: frozenset({AgentStatus.DESIGNING, AgentStatus.ERROR}),
    AgentStatus.DESIGNING: frozenset({AgentStatus.ARCHITECTING, AgentStatus.ERROR}),
    AgentStatus.ARCHITECTING: frozenset({AgentStatus.CODING, AgentStatus.ERROR}),
    AgentStatus.CODING: frozenset({AgentStatus.REVIEWING, AgentStatus.ERROR}),
    AgentStatus.REVIEWING: frozenset({AgentStatus.COMPILING, AgentStatus.ERROR}),
    AgentStatus.COMPILING: frozenset({AgentStatus.HEALING, AgentStatus.READY, AgentStatus.ERROR}),
    AgentStatus.HEALING: frozenset({AgentStatus.COMPILING, AgentStatus.ERROR}),
    AgentStatus.READY: frozenset({AgentStatus.MANAGING}),
    AgentStatus.ERROR: frozenset({AgentStatus.MANAGING}),
}

RUNNABLE_STATUSES: FrozenSet[AgentStatus] = frozenset(
    {AgentStatus.IDLE, AgentStatus.READY, AgentStatus.ERROR}
)

STAGE_STATUSES: FrozenSet[AgentStatus] = frozenset(TRANSITIONS) - RUNNABLE_STATUSES

# Label of the snapshot captured when a stage status is entered.
MILESTONE_LABELS: Dict[AgentStatus, str] = {
    AgentStatus.MANAGING: "Run started",
    AgentStatus.PLANNING: "Requirements drafted",
    AgentStatus.DESIGNING: "Plan mapped",
    AgentStatus.ARCHITECTING: "Design system ready",
    AgentStatus.CODING: "File structure scaffolded",
    AgentStatus.REVIEWING: "Code implemented",
    AgentStatus.COMPILING: "Audit complete",
    AgentStatus.HEALING: "Build failed",
}

# Labels for a status re-entered from a particular predecessor.
REENTRY_LABELS: Dict[Tuple[AgentStatus, AgentStatus], str] = {
    (AgentStatus.HEALING, AgentStatus.COMPILING): "Patch applied",
}


def milestone_label(previous: AgentStatus, current: AgentStatus) -> Optional[str]:
    return REENTRY_LABELS.get((previous, current), MILESTONE_LABELS.get(current))


def can_transition(current: AgentStatus, requested: AgentStatus) -> bool:
    return requested in TRANSITIONS.get(current, frozenset())


class StudioModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Plan(StudioModel):
    features: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class DesignMetadata(StudioModel):
    app_name: str = ""
    style_vibe: str = "Modern"  # Modern | Corporate | Playful | Brutalist | Minimalist


class DesignColors(StudioModel):
    background: str = "#f8fafc"
    foreground: str = "#0f172a"
    primary: str = "#2563eb"
    primary_foreground: str = "#ffffff"
    secondary: str = "#64748b"
    accent: str = "#f59e0b"
    muted: str = "#e2e8f0"
    border: str = "#cbd5e1"


class DesignLayout(StudioModel):
    radius: str = "0.75rem"
    spacing: str = "1rem"
    container: str = "72rem"


class DesignTypography(StudioModel):
    font_sans: str = "Inter, sans-serif"
    h1: str = "2.25rem"
    h2: str = "1.5rem"
    body: str = "1rem"


class DesignSystem(StudioModel):
    metadata: DesignMetadata = Field(default_factory=DesignMetadata)
    colors: DesignColors = Field(default_factory=DesignColors)
    layout: DesignLayout = Field(default_factory=DesignLayout)
    typography: DesignTypography = Field(default_factory=DesignTypography)


class ReviewComment(StudioModel):
    file: str = ""
    severity: str = "info"
    category: str = "quality"
    message: str = ""
    recommendation: str = ""


class ReviewReport(StudioModel):
    overall_score: float = 0.0
    scores: Dict[str, float] = Field(default_factory=dict)
    comments: List[ReviewComment] = Field(default_factory=list)

    @field_validator("overall_score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return max(0.0, min(100.0, float(value)))


class PluginHook(str, Enum):
    POST_CODING = "post-coding"
    POST_AUDIT = "post-audit"
    ON_DEMAND = "on-demand"


class NeuralPlugin(StudioModel):
    id: str
    name: str
    description: str
    icon: str = "🧩"
    hook: PluginHook = PluginHook.ON_DEMAND
    enabled: bool = True
    author: str = "Agentic Studio"


class PluginMutation(StudioModel):
    file: str
    content: str


class PluginResult(StudioModel):
    comments: List[ReviewComment] = Field(default_factory=list)
    mutations: List[PluginMutation] = Field(default_factory=list)


class Resources(StudioModel):
    cpu: float = 0.0
    memory: float = 0.0
    vfs_size: float = 0.0
    processes: List[str] = Field(default_factory=list)


class HistorySnapshot(StudioModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    label: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    status: AgentStatus
    file_system: Dict[str, str] = Field(default_factory=dict)
    design_system: Optional[DesignSystem] = None
    terminal_logs: List[str] = Field(default_factory=list)
    review_report: Optional[ReviewReport] = None


class ProjectState(StudioModel):
    user_prompt: str = ""
    srs: Optional[str] = None
    plan: Optional[Plan] = None
    design_system: Optional[DesignSystem] = None
    file_system: Dict[str, str] = Field(default_factory=dict)
    current_file: Optional[str] = None
    status: AgentStatus = AgentStatus.IDLE
    iteration_count: int = 0
    terminal_logs: List[str] = Field(default_factory=lambda: [WELCOME_LOG])
    resources: Resources = Field(default_factory=Resources)
    history: List[HistorySnapshot] = Field(default_factory=list)
    selected_history_id: Optional[str] = None
    active_review: Optional[ReviewReport] = None
    installed_plugins: List[NeuralPlugin] = Field(default_factory=lambda: default_plugins())
    last_saved: Optional[str] = None

    def find_snapshot(self, snapshot_id: str) -> Optional[HistorySnapshot]:
        for snapshot in self.history:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def find_plugin(self, plugin_id: str) -> Optional[NeuralPlugin]:
        for plugin in self.installed_plugins:
            if plugin.id == plugin_id:
                return plugin
        return None

    @property
    def selected_snapshot(self) -> Optional[HistorySnapshot]:
        if self.selected_history_id is None:
            return None
        return self.find_snapshot(self.selected_history_id)

    @property
    def active_file_system(self) -> Dict[str, str]:
        """File system the editor shows: the selected snapshot's, else live."""
        snapshot = self.selected_snapshot
        return snapshot.file_system if snapshot is not None else self.file_system


def default_plugins() -> List[NeuralPlugin]:
    return [
        NeuralPlugin(
            id="a11y-auditor",
            name="Accessibility Auditor",
            description="Checks components for WCAG issues: missing labels, contrast, keyboard traps.",
            icon="♿",
            hook=PluginHook.POST_AUDIT,
        ),
        NeuralPlugin(
            id="security-scanner",
            name="Security Scanner",
            description="Flags unsafe HTML injection, hard-coded secrets and risky dependencies.",
            icon="🛡️",
            hook=PluginHook.POST_AUDIT,
        ),
        NeuralPlugin(
            id="perf-optimizer",
            name="Performance Optimizer",
            description="Rewrites hot components with memoization and lazy loading.",
            icon="⚡",
            hook=PluginHook.POST_CODING,
            enabled=False,
        ),
        NeuralPlugin(
            id="docs-writer",
            name="Docs Writer",
            description="Writes a README.md describing features, structure and scripts.",
            icon="📝",
            hook=PluginHook.ON_DEMAND,
        ),
    ]


def default_state() -> ProjectState:
    return ProjectState()
