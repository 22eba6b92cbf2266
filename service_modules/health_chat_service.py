"""
Health Chat Service - forwards client health questions to the OpenAI chat API.
"""
import os
import time
import threading
import logging

import requests
from fastapi import HTTPException

from .base import load_json, date

logger = logging.getLogger("studio_app")

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-3.5-turbo"
MIN_INTERVAL_SECONDS = 1.0

SYSTEM_PROMPT = (
    "You are Vista, the friendly health and fitness advisor of Vista fitness studio. "
    "Answer questions about training, nutrition, recovery and healthy habits in a warm, "
    "encouraging tone and keep answers short and practical. Use the client's profile data "
    "when it is relevant, for example to comment on BMI or progress towards their goals. "
    "Do not give medical diagnoses; recommend seeing a doctor for injuries, pain or medical "
    "conditions. When useful, suggest the studio's private training, group classes or protein "
    "shakes."
)


def latest_value(entries: list):
    if not entries:
        return None
    return sorted(entries, key=lambda e: e.get("date", ""))[-1].get("value")


def compute_bmi(weight, height):
    if not weight or not height:
        return None
    return round(weight / ((height / 100) ** 2), 2)


def _age(date_of_birth: str):
    try:
        born = date.fromisoformat(date_of_birth)
    except (TypeError, ValueError):
        return None
    today = date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def build_user_context(user) -> str:
    weight = latest_value(load_json(user.weight_json))
    waist = latest_value(load_json(user.waist_json))
    bmi = compute_bmi(weight, user.height)
    goals = [g["description"] for g in load_json(user.health_goals_json) if not g.get("completed")]

    def show(value, unit=""):
        return f"{value}{unit}" if value not in (None, "") else "Unknown"

    return "\n".join([
        f"Weight: {show(weight, ' kg')}",
        f"Height: {show(user.height, ' cm')}",
        f"BMI: {show(bmi)}",
        f"Waist circumference: {show(waist, ' cm')}",
        f"Gender: {show(user.gender)}",
        f"Age: {show(_age(user.date_of_birth))}",
        f"Activity level: {show(user.activity_level)}",
        f"Health goals: {', '.join(goals) if goals else 'Unknown'}",
    ])


class HealthChatService:
    """Service for the health advisor chat."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last_request = 0.0

    def _check_rate_limit(self):
        with self._lock:
            now = time.monotonic()
            if now - self._last_request < MIN_INTERVAL_SECONDS:
                raise HTTPException(status_code=429, detail="Please wait a moment before sending another message.")
            self._last_request = now

    def reset_rate_limit(self):
        with self._lock:
            self._last_request = 0.0

    def ask(self, question: str, user) -> dict:
        if not question or not question.strip():
            raise HTTPException(status_code=400, detail="Question is required")
        self._check_rate_limit()

        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            logger.error("OPENAI_API_KEY not set, cannot answer health question")
            raise HTTPException(status_code=500, detail="API key is not configured")

        payload = {
            "model": OPENAI_MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"My data:\n{build_user_context(user)}\n\nQuestion: {question.strip()}"},
            ],
            "max_tokens": 256,
            "temperature": 0.7,
        }
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

        try:
            response = requests.post(OPENAI_URL, headers=headers, json=payload, timeout=10)
        except requests.RequestException as e:
            logger.error(f"OpenAI request failed: {e}")
            raise HTTPException(status_code=500, detail="Error fetching the answer. Please try again later.")

        if response.status_code == 429:
            logger.warning("OpenAI rate limit hit")
            raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")
        if response.status_code != 200:
            logger.error(f"OpenAI error {response.status_code}: {response.text[:200]}")
            raise HTTPException(status_code=500, detail="Error fetching the answer. Please try again later.")

        try:
            answer = response.json()["choices"][0]["message"]["content"].strip()
        except (ValueError, KeyError, IndexError) as e:
            logger.error(f"Unexpected OpenAI response: {e}")
            raise HTTPException(status_code=500, detail="Error fetching the answer. Please try again later.")

        logger.info(f"Health question answered for {user.id}")
        return {"answer": answer}


# Singleton instance
health_chat_service = HealthChatService()


def get_health_chat_service() -> HealthChatService:
    """Dependency injection helper."""
    return health_chat_service
