"""Signal dictionary: keyword tables for deterministic signal detection.

Each concept, entity and tool maps to the synonyms that trigger it. A
subset of concept keys is flagged toxic; their presence on an item shields
the item's broad signals from full punishment.

The dictionary is read-only at runtime. The built-in tables below are the
default; a YAML file with the same shape can replace them.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

import structlog
import yaml
from pydantic import Field, ValidationError, field_validator

from signal_feedback.data_model import StrictBaseModel
from signal_feedback.errors import DictionaryValidationError
from signal_feedback.signals.constants import KEY_SEPARATOR
from signal_feedback.signals.models import SignalType


logger = structlog.get_logger()

SynonymTable = dict[str, Annotated[list[str], Field(min_length=1)]]


DEFAULT_CONCEPTS: dict[str, list[str]] = {
    # Toxic concepts
    "nsfw": [
        "nsfw",
        "nude",
        "nudity",
        "porn",
        "pornographic",
        "sexual",
        "adult content",
        "explicit",
        "xxx",
    ],
    "undress": [
        "undress",
        "strip",
        "remove clothes",
        "naked",
        "unclothed",
        "clothes off",
        "disrobe",
    ],
    "celebrity_deepfake": ["celebrity deepfake", "celebrity fake", "fake celebrity"],
    "gossip": ["gossip", "rumor", "scandal", "tabloid", "drama"],
    # Security
    "deepfake": [
        "deepfake",
        "deep fake",
        "face swap",
        "synthetic video",
        "face-swap",
        "synthetic media",
    ],
    "malware": [
        "malware",
        "trojan",
        "ransomware",
        "virus",
        "worm",
        "backdoor",
        "spyware",
        "keylogger",
    ],
    "prompt_injection": [
        "prompt injection",
        "jailbreak",
        "jailbreaking",
        "system prompt leak",
        "prompt leak",
        "prompt attack",
    ],
    "data_breach": [
        "data breach",
        "data leak",
        "leaked data",
        "hack",
        "hacked",
        "compromised",
    ],
    # Privacy
    "privacy": [
        "privacy",
        "gdpr",
        "data protection",
        "tracking",
        "surveillance",
        "pii",
        "personal data",
    ],
    "biometric": [
        "biometric",
        "face recognition",
        "facial recognition",
        "fingerprint",
        "voice recognition",
    ],
    # Technical
    "agents": [
        "agents",
        "autonomous",
        "multi-agent",
        "agentic",
        "orchestration",
        "agent framework",
    ],
    "rls": ["rls", "row level security", "row-level security", "row level policies"],
    "rag": [
        "rag",
        "retrieval augmented",
        "retrieval-augmented",
        "vector search",
        "embeddings",
    ],
    "fine_tuning": [
        "fine-tuning",
        "fine tuning",
        "finetuning",
        "lora",
        "qlora",
        "peft",
    ],
    "context_window": [
        "context window",
        "context length",
        "token limit",
        "long context",
    ],
    "multimodal": [
        "multimodal",
        "multi-modal",
        "vision",
        "image understanding",
        "audio understanding",
    ],
    # Business
    "pricing": [
        "pricing",
        "cost",
        "subscription",
        "freemium",
        "pay-per-use",
        "token cost",
        "api pricing",
    ],
    "open_source": [
        "open source",
        "opensource",
        "foss",
        "mit license",
        "apache license",
        "open-source",
        "open weights",
    ],
    "enterprise": ["enterprise", "b2b", "business", "corporate", "saas"],
    "startup": [
        "startup",
        "funding",
        "seed round",
        "series a",
        "vc",
        "venture capital",
    ],
    # Regulation
    "regulation": [
        "regulation",
        "compliance",
        "eu ai act",
        "ai act",
        "legislation",
        "policy",
    ],
    "copyright": [
        "copyright",
        "intellectual property",
        "ip",
        "fair use",
        "training data rights",
    ],
}

DEFAULT_ENTITIES: dict[str, list[str]] = {
    # Companies
    "openai": ["openai", "open ai"],
    "anthropic": ["anthropic", "claude"],
    "google": ["google", "deepmind", "google ai"],
    "meta": ["meta", "facebook ai", "llama"],
    "microsoft": ["microsoft", "msft"],
    "xai": ["xai", "x.ai", "grok"],
    "mistral": ["mistral", "mistral ai"],
    "cohere": ["cohere"],
    "stability": ["stability ai", "stable diffusion"],
    "amazon": ["amazon", "aws", "bedrock"],
    "nvidia": ["nvidia", "nvda"],
    "huggingface": ["huggingface", "hugging face", "\U0001f917"],
    # Products and models
    "grok": ["grok"],
    "gemini": ["gemini", "bard"],
    "gpt": ["gpt-4", "gpt-5", "chatgpt", "gpt4", "gpt5"],
    "claude": ["claude", "claude 3", "claude 4"],
    "llama": ["llama", "llama 2", "llama 3", "llama2", "llama3"],
    "perplexity": ["perplexity"],
}

DEFAULT_TOOLS: dict[str, list[str]] = {
    "supabase": ["supabase"],
    "vercel": ["vercel", "v0"],
    "cursor": ["cursor", "cursor ai"],
    "windsurf": ["windsurf", "codeium"],
    "github_copilot": ["github copilot", "copilot", "gh copilot"],
    "replit": ["replit", "repl.it"],
    "bolt": ["bolt.new", "bolt ai"],
    "lovable": ["lovable", "lovable.dev"],
    "langchain": ["langchain", "langgraph"],
    "llamaindex": ["llamaindex", "llama index"],
    "autogen": ["autogen", "auto-gen"],
    "crewai": ["crewai", "crew ai"],
    "dify": ["dify"],
    "flowise": ["flowise"],
    "n8n": ["n8n"],
    "make": ["make.com", "integromat"],
    "zapier": ["zapier"],
}

# concept:porn has no dictionary entry; it stays flagged so externally
# supplied signal bundles carrying it are still treated as toxic.
DEFAULT_TOXIC_CONCEPTS: frozenset[str] = frozenset(
    {
        "concept:nsfw",
        "concept:undress",
        "concept:porn",
        "concept:celebrity_deepfake",
        "concept:gossip",
    }
)


class SignalDictionary(StrictBaseModel):
    """Keyword tables for concept, entity and tool detection.

    Table order matters: extraction and context generation follow the
    iteration order of each table.

    Attributes:
        version: Schema version.
        concepts: Concept name to trigger synonyms.
        entities: Entity name to trigger synonyms.
        tools: Tool name to trigger synonyms.
        toxic_concepts: ``concept:*`` keys flagged sensitive.
    """

    version: Annotated[str, Field(pattern=r"^\d+\.\d+$")] = "1.0"
    concepts: SynonymTable = Field(default_factory=dict)
    entities: SynonymTable = Field(default_factory=dict)
    tools: SynonymTable = Field(default_factory=dict)
    toxic_concepts: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("concepts", "entities", "tools")
    @classmethod
    def validate_synonyms_non_empty(
        cls, table: dict[str, list[str]]
    ) -> dict[str, list[str]]:
        """Ensure names and synonyms are non-empty strings."""
        for name, synonyms in table.items():
            if not name.strip():
                msg = "Dictionary entry names must be non-empty"
                raise ValueError(msg)
            for synonym in synonyms:
                if not synonym.strip():
                    msg = f"Synonyms for {name!r} must be non-empty strings"
                    raise ValueError(msg)
        return table

    @field_validator("toxic_concepts")
    @classmethod
    def validate_toxic_are_concept_keys(cls, keys: frozenset[str]) -> frozenset[str]:
        """Ensure every toxic entry is a ``concept:*`` key."""
        prefix = f"{SignalType.CONCEPT.value}{KEY_SEPARATOR}"
        bad = sorted(k for k in keys if not k.startswith(prefix))
        if bad:
            msg = f"Toxic entries must be concept keys: {bad}"
            raise ValueError(msg)
        return keys

    def table_for(self, signal_type: SignalType) -> dict[str, list[str]]:
        """Get the synonym table for a keyword-matched signal type.

        Args:
            signal_type: concept, entity or tool.

        Returns:
            The matching table.

        Raises:
            ValueError: For types that are not keyword matched.
        """
        if signal_type is SignalType.CONCEPT:
            return self.concepts
        if signal_type is SignalType.ENTITY:
            return self.entities
        if signal_type is SignalType.TOOL:
            return self.tools
        msg = f"{signal_type.value} signals are not keyword matched"
        raise ValueError(msg)

    def is_toxic(self, concept_key: str) -> bool:
        """Check whether a concept key is flagged toxic.

        Args:
            concept_key: Full ``concept:*`` key.

        Returns:
            True if the concept is toxic.
        """
        return concept_key in self.toxic_concepts

    def has_toxic(self, concept_keys: list[str] | tuple[str, ...]) -> bool:
        """Check whether any of the given concept keys is toxic."""
        return any(self.is_toxic(key) for key in concept_keys)


@lru_cache(maxsize=1)
def default_dictionary() -> SignalDictionary:
    """Get the built-in signal dictionary."""
    return SignalDictionary(
        concepts=DEFAULT_CONCEPTS,
        entities=DEFAULT_ENTITIES,
        tools=DEFAULT_TOOLS,
        toxic_concepts=DEFAULT_TOXIC_CONCEPTS,
    )


def load_dictionary(path: Path) -> SignalDictionary:
    """Load and validate a signal dictionary from YAML.

    Args:
        path: Path to the dictionary YAML file.

    Returns:
        Validated dictionary.

    Raises:
        DictionaryValidationError: If the file content fails validation.
        FileNotFoundError: If the file does not exist.
    """
    log = logger.bind(component="signals", file_path=str(path))
    log.info("loading_signal_dictionary")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        errors = [{"loc": "(root)", "msg": f"YAML parse error: {e}"}]
        log.error("signal_dictionary_invalid", error_count=1)
        raise DictionaryValidationError(errors, str(path)) from e

    try:
        dictionary = SignalDictionary.model_validate(data)
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]) or "(root)", "msg": err["msg"]}
            for err in e.errors()
        ]
        log.error("signal_dictionary_invalid", error_count=len(errors))
        raise DictionaryValidationError(errors, str(path)) from e

    log.info(
        "signal_dictionary_loaded",
        concepts=len(dictionary.concepts),
        entities=len(dictionary.entities),
        tools=len(dictionary.tools),
        toxic=len(dictionary.toxic_concepts),
    )
    return dictionary
