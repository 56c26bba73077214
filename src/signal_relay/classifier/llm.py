"""LLM signal classifier — OpenAI-compatible chat/completions with model fallback."""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from signal_relay.classifier.base import Classification, SignalCandidate, SignalClassifier
from signal_relay.config.schema import ClassifierConfig

log = structlog.get_logger("classifier")

MIN_TEXT_LENGTH = 3

SIGNAL_DETECTION_PROMPT = """You are a forex trading signal detector. Analyze the message and determine if it contains a valid trading signal.

A valid trading signal must include:
- A clear currency pair or instrument (e.g. EURUSD, GBPJPY, XAUUSD). Do not guess the pair from prices. "GOLD" or "XAU" means "XAUUSD".
- A direction (BUY/SELL or LONG/SHORT)
- Optionally: entry price, stop loss, take profit levels

A single message may contain several signals; return one object per signal.

Respond with JSON only:
{
  "signals": [
    {
      "isSignal": boolean,
      "confidence": number (0-1),
      "reason": string (40-80 words: the rationale for the direction and a short risk note),
      "symbol": string or null,
      "direction": "BUY" or "SELL" or null,
      "entryPrice": number or null,
      "stopLoss": number or null,
      "takeProfit": [number] or null
    }
  ]
}

If the message is not a signal, return one object with isSignal false and the reason."""

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ModelUnavailable(Exception):
    """The model could not answer; the next one in the list should be tried."""


def model_label(model: str) -> str:
    """``"openai/gpt-oss-120b"`` -> ``"gpt-oss-120b"``."""
    return model.rsplit("/", 1)[-1] or model


def _candidate(raw: dict[str, Any]) -> SignalCandidate | None:
    if not raw.get("isSignal") or not raw.get("symbol") or not raw.get("direction"):
        return None
    direction = str(raw["direction"]).upper()
    direction = {"LONG": "BUY", "SHORT": "SELL"}.get(direction, direction)
    take_profit = raw.get("takeProfit") or []
    if not isinstance(take_profit, list):
        take_profit = [take_profit]
    try:
        return SignalCandidate(
            symbol=str(raw["symbol"]),
            direction=direction,
            confidence=raw.get("confidence") or 0.0,
            entry_price=raw.get("entryPrice") or None,
            stop_loss=raw.get("stopLoss") or None,
            take_profit=[float(tp) for tp in take_profit if tp],
            reason=raw.get("reason") or None,
        )
    except (ValidationError, TypeError, ValueError):
        log.warning("candidate_rejected", raw=raw)
        return None


def parse_analysis(content: str, model_used: str | None = None) -> Classification:
    """Turn the model's JSON answer into a Classification.

    Raises ValueError when the content is not the expected shape.
    """
    data = json.loads(content)
    if isinstance(data, dict) and "signals" not in data and "isSignal" in data:
        data = {"signals": [data]}
    if not isinstance(data, dict) or not isinstance(data.get("signals"), list):
        raise ValueError("response has no signals array")

    raw_signals = [s for s in data["signals"] if isinstance(s, dict)]
    candidates = [c for c in (_candidate(s) for s in raw_signals) if c is not None]
    if not candidates:
        reason = raw_signals[0].get("reason") if raw_signals else None
        return Classification(
            verdict="no_signal",
            description=reason or "No actionable trading signal detected",
            model_used=model_used,
        )

    summary = ", ".join(f"{c.direction} {c.symbol.upper()}" for c in candidates)
    return Classification(
        verdict="valid_signal",
        description=f"{len(candidates)} signal(s) detected: {summary}",
        model_used=model_used,
        candidates=candidates,
    )


class LLMSignalClassifier(SignalClassifier):
    """Classifies messages with the first model in the list that answers.

    Rate limits, overloads and timeouts move on to the next model. If every
    model fails the result is an ``error`` verdict; nothing is raised.
    """

    def __init__(self, config: ClassifierConfig | None = None, http: httpx.AsyncClient | None = None):
        self.config = config or ClassifierConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self._http = http

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.config.model_timeout_s)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def _complete(self, model: str, text: str) -> str:
        http = await self._get_http()
        try:
            resp = await http.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                json={
                    "model": model,
                    "messages": [
                        {"role": "system", "content": SIGNAL_DETECTION_PROMPT},
                        {"role": "user", "content": text},
                    ],
                    "temperature": self.config.temperature,
                    "max_tokens": self.config.max_tokens,
                    "response_format": {"type": "json_object"},
                },
                timeout=self.config.model_timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise ModelUnavailable(f"timed out after {self.config.model_timeout_s}s") from exc
        except httpx.HTTPError as exc:
            raise ModelUnavailable(str(exc) or type(exc).__name__) from exc

        if resp.status_code in _RETRYABLE_STATUS:
            raise ModelUnavailable(f"HTTP {resp.status_code}")
        if resp.status_code != 200:
            raise ModelUnavailable(f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ModelUnavailable("malformed completion") from exc
        if not content:
            raise ModelUnavailable("empty completion")
        return content

    async def classify(self, text: str) -> Classification:
        if not text or len(text.strip()) < MIN_TEXT_LENGTH:
            return Classification(
                verdict="no_signal",
                description="Message too short to contain trading signal",
            )
        if not self.config.api_key:
            log.error("classifier_api_key_missing")
            return Classification.error()

        for model in self.config.models:
            try:
                content = await self._complete(model, text)
                result = parse_analysis(content, model_label(model))
            except ModelUnavailable as exc:
                log.warning("model_unavailable", model=model, reason=str(exc))
                continue
            except ValueError as exc:
                log.warning("model_response_invalid", model=model, reason=str(exc))
                continue
            log.info(
                "message_classified",
                model=result.model_used,
                verdict=result.verdict,
                candidates=len(result.candidates),
            )
            return result

        log.error("classification_exhausted", models=self.config.models)
        return Classification.error()
