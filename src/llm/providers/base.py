from __future__ import annotations
from abc import ABC, abstractmethod

class LLMProvider(ABC):
    name: str = "base"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Must return the model output as TEXT (JSON is isolated and validated by the callers).
        """
        raise NotImplementedError
