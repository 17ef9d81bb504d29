from jobpost.ai.config import llm_enabled, load_ai_config
from jobpost.ai.providers.openai_provider import OpenAICompletionClient
from jobpost.ai.types import CompletionClient, CompletionDisabledError, CompletionOptions


class DisabledCompletionClient:
    """Stand-in used when no provider is configured; every call fails fast."""

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        raise CompletionDisabledError(
            f"Completion requested by '{options.caller}' but LLM is disabled or has no API key."
        )


def get_completion_client() -> CompletionClient:
    cfg = load_ai_config()
    if not llm_enabled(cfg):
        return DisabledCompletionClient()

    if cfg.provider in {"openai", "groq"}:
        return OpenAICompletionClient(
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            default_model=cfg.default_model,
            provider=cfg.provider,
        )

    raise ValueError(f"Unsupported LLM_PROVIDER='{cfg.provider}'")
