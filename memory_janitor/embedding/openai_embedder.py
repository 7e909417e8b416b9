from typing import List

from openai import AsyncOpenAI


class OpenAIEmbedder:
    """
    Wrapper around an OpenAI embedding model.

    The client is created on first use so that building the embedder never
    needs network access or an API key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def embed_one(self, text: str) -> List[float]:
        text = text.replace("\n", " ")
        resp = await self._get_client().embeddings.create(model=self.model, input=[text])
        return list(resp.data[0].embedding)
