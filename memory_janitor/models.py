import json
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

MEMORY_TYPES = ("fact", "goal", "preference")
CONSTRAINT_CATEGORY = "constraint"


class GoalPayload(BaseModel):
    kind: Literal["goal"] = "goal"
    text: str
    deadline: Optional[str] = None
    priority: Optional[int] = None


class FreeformContent(BaseModel):
    kind: Literal["freeform"] = "freeform"
    text: str


ContentPayload = Annotated[Union[GoalPayload, FreeformContent], Field(discriminator="kind")]
_payload_adapter = TypeAdapter(ContentPayload)


def parse_content(content: str) -> GoalPayload | FreeformContent:
    """
    Validate raw item content once into a tagged payload.

    Goal-shaped content is stored as a JSON object such as
    {"goal": "Run a marathon", "deadline": "2025-06-01", "priority": 2}.
    Anything that is not such an object is freeform text.
    """
    stripped = content.strip()
    if stripped.startswith("{"):
        try:
            raw = json.loads(stripped)
        except ValueError:
            raw = None
        if isinstance(raw, dict):
            text = raw.get("goal") or raw.get("text") or raw.get("content")
            if isinstance(text, str):
                try:
                    return _payload_adapter.validate_python(
                        {
                            "kind": "goal",
                            "text": text,
                            "deadline": raw.get("deadline"),
                            "priority": raw.get("priority"),
                        }
                    )
                except ValidationError:
                    pass
    return FreeformContent(text=content)


class MemoryItem(BaseModel):
    id: str
    content: str
    type: str                      # "fact" | "goal" | "preference" | "completed_goal"
    created_at: str
    confidence: float = 0.0
    chat_id: Optional[int] = None
    status: str = "active"         # "active" | "archived" | "deleted"
    category: Optional[str] = None
    importance: Optional[float] = None
    stability: Optional[float] = None
    access_count: int = 0
    last_used_at: Optional[str] = None

    @property
    def payload(self) -> GoalPayload | FreeformContent:
        return parse_content(self.content)

    @property
    def text(self) -> str:
        return self.payload.text


class SearchMatch(BaseModel):
    id: str
    content: str
    type: str
    created_at: str = ""
    similarity: float


class ClusterMember(BaseModel):
    item: MemoryItem
    similarity: float


class DuplicateCluster(BaseModel):
    keeper: MemoryItem
    duplicates: List[ClusterMember] = []


class DeletionRecord(BaseModel):
    reason: str = "duplicate"      # "duplicate" | "junk"
    kept_id: Optional[str] = None  # None for junk
    deleted_id: str
    similarity: float = 0.0
    kept_snippet: str = ""
    deleted_snippet: str
    type: str
    chat_id: Optional[int] = None


class TypeStats(BaseModel):
    scanned: int = 0
    duplicates_found: int = 0
    deleted: int = 0


class DemotionResult(BaseModel):
    candidates: int = 0
    archived: int = 0
    dry_run: bool = False


class CleanupResult(BaseModel):
    scanned: int = 0
    duplicates_found: int = 0
    junk_found: int = 0
    deleted: int = 0
    skipped: int = 0
    dry_run: bool = False
    by_type: Dict[str, TypeStats] = {}
    deletions: List[DeletionRecord] = []
    capped_at: Optional[int] = None
    demotion_candidates: int = 0
    demotion_archived: int = 0
    completed_goals_archived: int = 0
    store_errors: List[str] = []


class PendingDedup(BaseModel):
    ids: List[str]
    count: int
    expires_at: str = Field(alias="expiresAt")
    summary: str

    model_config = {"populate_by_name": True}


class QueryResult(BaseModel):
    """Items returned by a store query, or the reason the query failed."""

    items: List[MemoryItem] = []
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReviewAction(BaseModel):
    label: str
    token: str


class ReviewOutcome(BaseModel):
    status: str                    # "confirmed" | "skipped" | "expired" | "failed"
    deleted: int = 0
    message: str


class ReviewProposal(BaseModel):
    ids: List[str] = []
    junk_count: int = 0
    duplicate_count: int = 0
    summary: str = ""
    message: str = ""
    saved: bool = False
    notified: bool = False
    dry_run: bool = False
