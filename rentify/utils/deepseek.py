import json
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)


class AgreementGenerationError(Exception):
    pass


class DeepSeekClient:
    """Single-shot chat completion call against the OpenAI-compatible DeepSeek API."""

    def __init__(self, api_key: str | None, base_url: str, model: str, timeout: int = 60):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def generate_text(self, system: str, prompt: str, temperature: float = 0.3) -> str:
        if not self.api_key:
            raise AgreementGenerationError("DeepSeek API key is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }
        req = urllib.request.Request(
            f"{self.base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.error("DeepSeek request failed: %s", e)
            raise AgreementGenerationError(str(e)) from e

        try:
            text = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected DeepSeek response shape: %s", body)
            raise AgreementGenerationError("Malformed completion response") from e

        text = (text or "").strip()
        if not text:
            raise AgreementGenerationError("Empty completion")
        return text
