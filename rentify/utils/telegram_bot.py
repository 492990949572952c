import json
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"


class TelegramBot:
    """
    Minimal Bot API client.

    Every call reports success as a bool and never raises: a bot outage must
    not break the request that triggered the message.
    """

    def __init__(self, token: str | None, timeout: int = 5):
        self.token = token
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.token)

    def _call(self, method: str, payload: dict) -> bool:
        if not self.token:
            logger.info("Telegram bot token not configured; skipping %s", method)
            return False

        req = urllib.request.Request(
            f"{API_BASE}/bot{self.token}/{method}",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = json.loads(response.read().decode("utf-8") or "{}")
        except (urllib.error.URLError, OSError, ValueError) as e:
            logger.warning("Telegram %s failed: %s", method, e)
            return False

        if not body.get("ok"):
            logger.warning("Telegram %s rejected: %s", method, body.get("description"))
            return False
        return True

    def send_message(
        self,
        chat_id,
        text: str,
        parse_mode: str | None = "Markdown",
        inline_keyboard: list | None = None,
    ) -> bool:
        payload = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if inline_keyboard:
            payload["reply_markup"] = {"inline_keyboard": inline_keyboard}
        return self._call("sendMessage", payload)

    def set_webhook(self, url: str, secret_token: str | None = None) -> bool:
        payload = {"url": url}
        if secret_token:
            payload["secret_token"] = secret_token
        return self._call("setWebhook", payload)

    def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> bool:
        payload = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return self._call("answerCallbackQuery", payload)
