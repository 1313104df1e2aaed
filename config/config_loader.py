"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

TIERS = ("primary", "secondary")


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PersonaConfig:
    name: str
    role: str
    instruction: str


@dataclass
class PersonasConfig:
    a: PersonaConfig
    b: PersonaConfig
    unified_name: str = "Unified"


@dataclass
class PromptsConfig:
    router: str
    debate_analysis: str
    rebuttal: str
    synthesis: str
    direct_answer_nudge: str = "Answer the question directly and helpfully."
    apology: str = "I'm sorry, I had trouble putting an answer together just now."
    list_instruction: str = ""
    code_instruction: str = ""


@dataclass
class DefaultsConfig:
    turn_budget: int
    consensus_threshold: int
    output_dir: Path
    min_debate_chars: int = 15
    temperature: float = 0.7
    short_answer_tokens: int = 500
    long_answer_tokens: int = 4000


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    personas: PersonasConfig
    prompts: PromptsConfig
    available_tiers: set[str] = field(default_factory=set)


def _persona(raw: dict) -> PersonaConfig:
    return PersonaConfig(
        name=str(raw["name"]),
        role=str(raw.get("role", "")),
        instruction=str(raw["instruction"]),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, KeyError if a
    required section is absent.
    Logs missing API keys but does not raise; callers check
    available_tiers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        turn_budget=int(defaults_raw["turn_budget"]),
        consensus_threshold=int(defaults_raw["consensus_threshold"]),
        output_dir=Path(defaults_raw["output_dir"]),
        min_debate_chars=int(defaults_raw.get("min_debate_chars", 15)),
        temperature=float(defaults_raw.get("temperature", 0.7)),
        short_answer_tokens=int(defaults_raw.get("short_answer_tokens", 500)),
        long_answer_tokens=int(defaults_raw.get("long_answer_tokens", 4000)),
    )

    personas_raw = raw["personas"]
    personas = PersonasConfig(
        a=_persona(personas_raw["A"]),
        b=_persona(personas_raw["B"]),
        unified_name=str(personas_raw.get("unified_name", "Unified")),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        router=prompts_raw["router"],
        debate_analysis=prompts_raw["debate_analysis"],
        rebuttal=prompts_raw["rebuttal"],
        synthesis=prompts_raw["synthesis"],
        **{
            key: str(prompts_raw[key])
            for key in ("direct_answer_nudge", "apology", "list_instruction", "code_instruction")
            if key in prompts_raw
        },
    )

    models: dict[str, ModelConfig] = {}
    available_tiers: set[str] = set()

    for tier, model_raw in raw["models"].items():
        if tier not in TIERS:
            logger.warning("Unknown model tier '%s' in settings, ignoring", tier)
            continue
        models[tier] = ModelConfig(
            name=tier,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_tiers.add(tier)
            logger.info("Tier available: %s (%s)", tier, model_raw["sdk"])
        else:
            logger.info(
                "Tier skipped (no API key): %s, set %s in .env",
                tier,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        personas=personas,
        prompts=prompts,
        available_tiers=available_tiers,
    )
