"""
Planning Graph Schema for FlowForge
===================================

Defines the typed data model every other module operates over:

- NodeVariant: closed set of planning node kinds (project, competitor, design, ...)
- Variant payloads: one dataclass per NodeVariant, forming a tagged union
- GraphNode / GraphEdge: graph instances wrapping a payload
- GenerationRecord: immutable, versioned log entry for one AI-produced artifact

Payload validation lives next to each payload class; the graph store calls it
on every mutation.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, Union
from enum import Enum
import re
import time
import uuid

from .errors import InvalidPayloadError, ValidationError

# Core Enums
class NodeVariant(Enum):
    PROJECT = "project"
    COMPETITOR = "competitor"
    DESIGN = "design"
    GOALS = "goals"
    PAGE = "page"
    SECTION = "section"
    FEATURE = "feature"
    PRD = "prd"

class EdgeVariant(Enum):
    DEFAULT = "default"
    DATA_FLOW = "data-flow"
    HIERARCHY = "hierarchy"

class GenerationKind(Enum):
    PRD = "prd"
    CODE = "code"
    ANALYSIS = "analysis"

# Variant-local status enums
class CompetitorStatus(Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"

class DesignStatus(Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    COMPLETE = "complete"
    ERROR = "error"

class PageStatus(Enum):
    PLANNING = "planning"
    BUILDING = "building"
    COMPLETE = "complete"
    ERROR = "error"

class SectionStatus(Enum):
    DRAFT = "draft"
    BUILDING = "building"
    COMPLETE = "complete"
    ERROR = "error"

class FeatureStatus(Enum):
    DRAFT = "draft"
    BUILDING = "building"
    COMPLETE = "complete"
    ERROR = "error"

class SectionKind(Enum):
    HERO = "hero"
    FEATURES = "features"
    TESTIMONIALS = "testimonials"
    CTA = "cta"
    PRICING = "pricing"
    FAQ = "faq"
    TEAM = "team"
    STATS = "stats"
    GALLERY = "gallery"
    CONTACT = "contact"
    NEWSLETTER = "newsletter"
    FOOTER = "footer"
    CUSTOM = "custom"

class DesignSourceType(Enum):
    URL = "url"
    UPLOAD = "upload"
    SCREENSHOT = "screenshot"

class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class PrdFormat(Enum):
    MARKDOWN = "markdown"
    NOTION = "notion"
    LINEAR = "linear"

# ============================================================================
# Field coercion helpers
# ============================================================================

def _enum(enum_type: Type[Enum], value: Any, field_name: str) -> Enum:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidPayloadError([f"{field_name}: invalid value {value!r}"]) from None

def _str(value: Any, field_name: str, default: str = "") -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidPayloadError([f"{field_name}: expected a string"])
    return value

def _opt_str(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    return _str(value, field_name)

def _str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidPayloadError([f"{field_name}: expected a list of strings"])
    return [str(item) for item in value]

def _mapping(value: Any, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidPayloadError([f"{field_name}: expected an object"])
    return dict(value)

def _number(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError([f"{field_name}: expected a number"])
    return float(value)

def _positive_int(value: Any, field_name: str, default: int = 1) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPayloadError([f"{field_name}: expected an integer"])
    if value < 1:
        raise InvalidPayloadError([f"{field_name}: must be positive, got {value}"])
    return value

def _plain(value: Any) -> Any:
    """Convert enums nested inside asdict() output to their values"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value

# ============================================================================
# Nested payload structures
# ============================================================================

@dataclass
class Position:
    """Canvas coordinates"""
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def coerce(cls, value: Any) -> 'Position':
        if value is None:
            return cls()
        if isinstance(value, Position):
            return cls(value.x, value.y)
        if isinstance(value, Mapping):
            return cls(_number(value.get("x", 0), "position.x"), _number(value.get("y", 0), "position.y"))
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return cls(_number(value[0], "position.x"), _number(value[1], "position.y"))
        raise InvalidPayloadError([f"position: cannot interpret {value!r}"])

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

@dataclass
class CompetitorAnalysis:
    """Structured result of analysing a competitor site"""
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    design_patterns: List[str] = field(default_factory=list)
    messaging_style: str = ""
    unique_features: List[str] = field(default_factory=list)
    ctas: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CompetitorAnalysis':
        data = _mapping(data, "analysis")
        return cls(
            strengths=_str_list(data.get("strengths"), "analysis.strengths"),
            weaknesses=_str_list(data.get("weaknesses"), "analysis.weaknesses"),
            design_patterns=_str_list(data.get("design_patterns"), "analysis.design_patterns"),
            messaging_style=_str(data.get("messaging_style"), "analysis.messaging_style"),
            unique_features=_str_list(data.get("unique_features"), "analysis.unique_features"),
            ctas=_str_list(data.get("ctas"), "analysis.ctas"),
        )

@dataclass
class Typography:
    detected: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

def normalize_color(value: str) -> str:
    """Upper-case hex colors with a leading '#'; other strings pass through"""
    value = value.strip()
    match = _HEX_COLOR.match(value)
    if not match:
        return value
    return "#" + match.group(1).upper()

@dataclass
class DesignExtraction:
    """Structured result of extracting a design reference"""
    color_palette: List[str] = field(default_factory=list)
    typography: Typography = field(default_factory=Typography)
    layout_patterns: List[str] = field(default_factory=list)
    style_mood: str = ""
    components: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'DesignExtraction':
        data = _mapping(data, "extraction")
        typography = _mapping(data.get("typography"), "extraction.typography")
        return cls(
            color_palette=[normalize_color(c) for c in _str_list(data.get("color_palette"), "extraction.color_palette")],
            typography=Typography(
                detected=_str_list(typography.get("detected"), "extraction.typography.detected"),
                suggestions=_str_list(typography.get("suggestions"), "extraction.typography.suggestions"),
            ),
            layout_patterns=_str_list(data.get("layout_patterns"), "extraction.layout_patterns"),
            style_mood=_str(data.get("style_mood"), "extraction.style_mood"),
            components=_str_list(data.get("components"), "extraction.components"),
        )

@dataclass
class Objective:
    id: str
    text: str
    priority: Priority = Priority.MEDIUM
    measurable: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Objective':
        data = _mapping(data, "objectives[]")
        return cls(
            id=_str(data.get("id"), "objectives[].id") or uuid.uuid4().hex[:8],
            text=_str(data.get("text"), "objectives[].text"),
            priority=_enum(Priority, data.get("priority", "medium"), "objectives[].priority"),
            measurable=_opt_str(data.get("measurable"), "objectives[].measurable"),
        )

@dataclass
class SeoMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SeoMetadata':
        data = _mapping(data, "seo")
        return cls(
            title=_opt_str(data.get("title"), "seo.title"),
            description=_opt_str(data.get("description"), "seo.description"),
            keywords=_str_list(data.get("keywords"), "seo.keywords"),
        )

@dataclass
class PrdRecord:
    """Live pointer from a page to its latest PRD"""
    content: str
    generated_at: float
    version: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PrdRecord':
        data = _mapping(data, "prd")
        return cls(
            content=_str(data.get("content"), "prd.content"),
            generated_at=_number(data.get("generated_at"), "prd.generated_at") or 0.0,
            version=_positive_int(data.get("version"), "prd.version"),
        )

@dataclass
class GeneratedContent:
    """Live pointer from a section to its latest generated code"""
    generated: str
    version: int
    generated_at: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GeneratedContent':
        data = _mapping(data, "content")
        return cls(
            generated=_str(data.get("generated"), "content.generated"),
            version=_positive_int(data.get("version"), "content.version"),
            generated_at=_number(data.get("generated_at"), "content.generated_at") or 0.0,
        )

# ============================================================================
# Variant payloads (tagged union)
# ============================================================================

@dataclass
class NodePayload:
    """Base for all variant payloads"""
    variant: ClassVar[NodeVariant]

    def validate(self) -> List[str]:
        """Return a list of invariant violations (empty when valid)"""
        return []

    def to_dict(self) -> Dict[str, Any]:
        data = _plain(asdict(self))
        data["type"] = self.variant.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'NodePayload':
        raise NotImplementedError

@dataclass
class ProjectPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.PROJECT

    name: str = ""
    description: Optional[str] = None
    industry: Optional[str] = None
    target_audience: Optional[str] = None
    brand_voice: Optional[str] = None

    def validate(self) -> List[str]:
        return [] if self.name.strip() else ["project.name must not be empty"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProjectPayload':
        return cls(
            name=_str(data.get("name"), "name"),
            description=_opt_str(data.get("description"), "description"),
            industry=_opt_str(data.get("industry"), "industry"),
            target_audience=_opt_str(data.get("target_audience"), "target_audience"),
            brand_voice=_opt_str(data.get("brand_voice"), "brand_voice"),
        )

@dataclass
class CompetitorPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.COMPETITOR

    url: str = ""
    name: Optional[str] = None
    screenshot: Optional[str] = None
    analysis: Optional[CompetitorAnalysis] = None
    status: CompetitorStatus = CompetitorStatus.PENDING

    def validate(self) -> List[str]:
        return [] if self.url.strip() else ["competitor.url must not be empty"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CompetitorPayload':
        analysis = data.get("analysis")
        return cls(
            url=_str(data.get("url"), "url"),
            name=_opt_str(data.get("name"), "name"),
            screenshot=_opt_str(data.get("screenshot"), "screenshot"),
            analysis=CompetitorAnalysis.from_dict(analysis) if analysis is not None else None,
            status=_enum(CompetitorStatus, data.get("status", "pending"), "status"),
        )

@dataclass
class DesignPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.DESIGN

    source: str = ""
    source_type: DesignSourceType = DesignSourceType.URL
    thumbnail: Optional[str] = None
    extraction: Optional[DesignExtraction] = None
    notes: Optional[str] = None
    status: DesignStatus = DesignStatus.PENDING

    def validate(self) -> List[str]:
        return [] if self.source.strip() else ["design.source must not be empty"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'DesignPayload':
        extraction = data.get("extraction")
        return cls(
            source=_str(data.get("source"), "source"),
            source_type=_enum(DesignSourceType, data.get("source_type", "url"), "source_type"),
            thumbnail=_opt_str(data.get("thumbnail"), "thumbnail"),
            extraction=DesignExtraction.from_dict(extraction) if extraction is not None else None,
            notes=_opt_str(data.get("notes"), "notes"),
            status=_enum(DesignStatus, data.get("status", "pending"), "status"),
        )

@dataclass
class GoalsPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.GOALS

    objectives: List[Objective] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    timeline: Optional[str] = None

    def validate(self) -> List[str]:
        errors = []
        seen = set()
        for objective in self.objectives:
            if not objective.text.strip():
                errors.append(f"goals.objectives[{objective.id}].text must not be empty")
            if objective.id in seen:
                errors.append(f"goals.objectives: duplicate id {objective.id}")
            seen.add(objective.id)
        return errors

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GoalsPayload':
        objectives = data.get("objectives") or []
        if not isinstance(objectives, (list, tuple)):
            raise InvalidPayloadError(["objectives: expected a list"])
        return cls(
            objectives=[o if isinstance(o, Objective) else Objective.from_dict(o) for o in objectives],
            constraints=_str_list(data.get("constraints"), "constraints"),
            timeline=_opt_str(data.get("timeline"), "timeline"),
        )

@dataclass
class PagePayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.PAGE

    name: str = ""
    route: str = ""
    description: Optional[str] = None
    seo: Optional[SeoMetadata] = None
    section_ids: List[str] = field(default_factory=list)
    prd: Optional[PrdRecord] = None
    status: PageStatus = PageStatus.PLANNING

    def validate(self) -> List[str]:
        errors = []
        if not self.name.strip():
            errors.append("page.name must not be empty")
        if not self.route.strip():
            errors.append("page.route must not be empty")
        elif not self.route.startswith("/"):
            errors.append(f"page.route must start with '/': {self.route!r}")
        if len(set(self.section_ids)) != len(self.section_ids):
            errors.append("page.section_ids must not repeat")
        return errors

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PagePayload':
        seo = data.get("seo")
        prd = data.get("prd")
        return cls(
            name=_str(data.get("name"), "name"),
            route=_str(data.get("route"), "route"),
            description=_opt_str(data.get("description"), "description"),
            seo=SeoMetadata.from_dict(seo) if seo is not None else None,
            section_ids=_str_list(data.get("section_ids"), "section_ids"),
            prd=PrdRecord.from_dict(prd) if prd is not None else None,
            status=_enum(PageStatus, data.get("status", "planning"), "status"),
        )

@dataclass
class SectionPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.SECTION

    name: str = ""
    section_type: SectionKind = SectionKind.CUSTOM
    description: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    content: Optional[GeneratedContent] = None
    status: SectionStatus = SectionStatus.DRAFT

    def validate(self) -> List[str]:
        return [] if self.name.strip() else ["section.name must not be empty"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SectionPayload':
        content = data.get("content")
        return cls(
            name=_str(data.get("name"), "name"),
            section_type=_enum(SectionKind, data.get("section_type", "custom"), "section_type"),
            description=_opt_str(data.get("description"), "description"),
            config=_mapping(data.get("config"), "config"),
            content=GeneratedContent.from_dict(content) if content is not None else None,
            status=_enum(SectionStatus, data.get("status", "draft"), "status"),
        )

@dataclass
class FeaturePayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.FEATURE

    name: str = ""
    description: Optional[str] = None
    requirements: List[str] = field(default_factory=list)
    integrations: List[str] = field(default_factory=list)
    status: FeatureStatus = FeatureStatus.DRAFT

    def validate(self) -> List[str]:
        return [] if self.name.strip() else ["feature.name must not be empty"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FeaturePayload':
        return cls(
            name=_str(data.get("name"), "name"),
            description=_opt_str(data.get("description"), "description"),
            requirements=_str_list(data.get("requirements"), "requirements"),
            integrations=_str_list(data.get("integrations"), "integrations"),
            status=_enum(FeatureStatus, data.get("status", "draft"), "status"),
        )

@dataclass
class PrdPayload(NodePayload):
    variant: ClassVar[NodeVariant] = NodeVariant.PRD

    source_node_ids: List[str] = field(default_factory=list)
    content: str = ""
    format: PrdFormat = PrdFormat.MARKDOWN
    generated_at: Optional[float] = None
    version: int = 1

    def validate(self) -> List[str]:
        return [] if self.version >= 1 else [f"prd.version must be positive, got {self.version}"]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PrdPayload':
        version = data.get("version", 1)
        if isinstance(version, bool) or not isinstance(version, int):
            raise InvalidPayloadError(["version: expected an integer"])
        return cls(
            source_node_ids=_str_list(data.get("source_node_ids"), "source_node_ids"),
            content=_str(data.get("content"), "content"),
            format=_enum(PrdFormat, data.get("format", "markdown"), "format"),
            generated_at=_number(data.get("generated_at"), "generated_at"),
            version=version,
        )

VariantPayload = Union[
    ProjectPayload, CompetitorPayload, DesignPayload, GoalsPayload,
    PagePayload, SectionPayload, FeaturePayload, PrdPayload,
]

PAYLOAD_TYPES: Dict[NodeVariant, Type[NodePayload]] = {
    NodeVariant.PROJECT: ProjectPayload,
    NodeVariant.COMPETITOR: CompetitorPayload,
    NodeVariant.DESIGN: DesignPayload,
    NodeVariant.GOALS: GoalsPayload,
    NodeVariant.PAGE: PagePayload,
    NodeVariant.SECTION: SectionPayload,
    NodeVariant.FEATURE: FeaturePayload,
    NodeVariant.PRD: PrdPayload,
}

_unmapped = set(NodeVariant) - set(PAYLOAD_TYPES)
if _unmapped:
    raise TypeError(f"NodeVariant without payload type: {sorted(v.value for v in _unmapped)}")

def payload_from_dict(variant: NodeVariant, data: Optional[Mapping[str, Any]]) -> NodePayload:
    """Build the payload for ``variant`` from a plain mapping"""
    data = _mapping(data, "payload")
    tag = data.get("type")
    if tag is not None and tag != variant.value:
        raise InvalidPayloadError([f"payload type {tag!r} does not match variant {variant.value!r}"])
    return PAYLOAD_TYPES[variant].from_dict(data)

# ============================================================================
# Graph instances
# ============================================================================

@dataclass
class GraphNode:
    """Typed planning node on the canvas"""
    id: str
    variant: NodeVariant
    payload: NodePayload
    position: Position = field(default_factory=Position)
    meta: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.payload.variant != self.variant:
            raise InvalidPayloadError([
                f"node {self.id}: payload is {self.payload.variant.value}, expected {self.variant.value}"
            ])

    @property
    def status(self) -> Optional[Enum]:
        """Variant-local status, or None for variants without one"""
        return getattr(self.payload, "status", None)

    @property
    def label(self) -> str:
        """Human-readable identifying field"""
        payload = self.payload
        for attr in ("name", "url", "source"):
            value = getattr(payload, attr, None)
            if value:
                return value
        return self.variant.value

    def touch(self):
        """Update modification timestamp"""
        self.updated_at = time.time()

@dataclass
class GraphEdge:
    """Directed edge: source provides context to target"""
    id: str
    source_id: str
    target_id: str
    variant: EdgeVariant = EdgeVariant.DEFAULT
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

@dataclass(frozen=True)
class GenerationRecord:
    """Append-only log entry for one AI-produced artifact"""
    id: str
    node_id: str
    kind: GenerationKind
    content: str
    version: int
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if isinstance(self.version, bool) or not isinstance(self.version, int) or self.version < 1:
            raise ValidationError([f"generation {self.id}: version must be a positive integer, got {self.version!r}"])

# Factory functions
def create_node(variant: NodeVariant, payload: Union[NodePayload, Mapping[str, Any], None] = None,
                position: Any = None, **kwargs) -> GraphNode:
    """Create a new graph node with a fresh id"""
    if not isinstance(payload, NodePayload):
        payload = payload_from_dict(variant, payload)
    now = time.time()
    return GraphNode(
        id=kwargs.get("node_id") or str(uuid.uuid4()),
        variant=variant,
        payload=payload,
        position=Position.coerce(position),
        meta=kwargs.get("meta", {}),
        created_at=kwargs.get("created_at", now),
        updated_at=kwargs.get("updated_at", now),
    )

def create_edge(source_id: str, target_id: str, variant: EdgeVariant = EdgeVariant.DEFAULT, **kwargs) -> GraphEdge:
    """Create a new graph edge with a fresh id"""
    return GraphEdge(
        id=kwargs.get("edge_id") or str(uuid.uuid4()),
        source_id=source_id,
        target_id=target_id,
        variant=variant,
        payload=dict(kwargs.get("payload") or {}),
    )
