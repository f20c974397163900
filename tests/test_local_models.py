import unittest

from wingman_api.errors import BackendUnavailableError
from wingman_api.local_models import LocalModelResolver
from wingman_api.providers.base import ProviderResponse


class StubLocalClient:
    def __init__(
        self,
        model: str,
        model_lists: list[list[str] | Exception],
        canary_error: Exception | None = None,
    ) -> None:
        self.model = model
        self._model_lists = list(model_lists)
        self._canary_error = canary_error
        self.list_calls = 0
        self.canary_models: list[str] = []

    async def list_models(self) -> list[str]:
        self.list_calls += 1
        if not self._model_lists:
            return []
        result = self._model_lists.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def send_raw(self, system_prompt, messages, attachments=(), max_output_tokens=None):
        self.canary_models.append(self.model)
        if self._canary_error is not None:
            raise self._canary_error
        return ProviderResponse(message="Hi!", model=self.model, duration_seconds=0.01)


class LocalModelResolverTests(unittest.IsolatedAsyncioTestCase):
    async def test_missing_model_falls_back_to_first_available(self) -> None:
        client = StubLocalClient("gemma", [["llama3.2", "mistral"]])

        result = await LocalModelResolver(client).resolve()

        self.assertEqual(client.model, "llama3.2")
        self.assertEqual(result.model, "llama3.2")
        self.assertTrue(result.substituted)
        self.assertTrue(result.verified)
        self.assertEqual(client.canary_models, ["llama3.2"])

    async def test_listed_model_is_kept(self) -> None:
        client = StubLocalClient("mistral", [["llama3.2", "mistral"]])

        result = await LocalModelResolver(client).resolve()

        self.assertEqual(result.model, "mistral")
        self.assertFalse(result.substituted)
        self.assertTrue(result.verified)

    async def test_empty_model_list_leaves_configured_model(self) -> None:
        client = StubLocalClient("gemma", [[]])

        result = await LocalModelResolver(client).resolve()

        self.assertEqual(client.model, "gemma")
        self.assertFalse(result.substituted)
        self.assertFalse(result.verified)
        self.assertEqual(client.canary_models, [])

    async def test_unreachable_server_is_treated_as_empty_list(self) -> None:
        outage = BackendUnavailableError("Ollama", "http://localhost:11434", "refused")
        client = StubLocalClient("gemma", [outage])

        result = await LocalModelResolver(client).resolve()

        self.assertEqual(result.model, "gemma")
        self.assertFalse(result.verified)

    async def test_failed_canary_resolves_once_more_then_gives_up(self) -> None:
        outage = BackendUnavailableError("Ollama", "http://localhost:11434", "boom")
        client = StubLocalClient("gemma", [["a", "b"], ["b"]], canary_error=outage)

        result = await LocalModelResolver(client).resolve()

        self.assertEqual(client.model, "b")
        self.assertEqual(result.model, "b")
        self.assertFalse(result.verified)
        self.assertEqual(client.list_calls, 2)
        self.assertEqual(client.canary_models, ["a"])

    async def test_available_models_swallows_listing_failure(self) -> None:
        outage = BackendUnavailableError("Ollama", "http://localhost:11434", "refused")
        client = StubLocalClient("gemma", [outage])

        self.assertEqual(await LocalModelResolver(client).available_models(), [])


if __name__ == "__main__":
    unittest.main()
