import json
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, sentinel

import httpx
from google.genai import errors as genai_errors
from openai import APIConnectionError

from wingman_api.errors import BackendUnavailableError, NoCompatibleModelError
from wingman_api.providers.cloud_chat_provider import CloudChatProvider
from wingman_api.providers.cloud_generative_provider import CloudGenerativeProvider
from wingman_api.providers.factory import build_provider_client
from wingman_api.providers.local_provider import LocalProvider
from wingman_api.schemas import (
    Attachment,
    CloudChatConfig,
    CloudGenerativeConfig,
    ConversationTurn,
    LocalConfig,
)

SCREENSHOT = Attachment(
    name="shot.png",
    mime_type="image/png",
    data_url="data:image/png;base64,iVBORw0KGgo=",
)
CHAT_CONFIG = CloudChatConfig(
    api_key="key", endpoint="https://example.openai.azure.com", deployment="gpt-5-mini"
)


def chat_completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        id="chatcmpl-1",
        model="gpt-5-mini",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
    )


class CloudChatProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_send_raw_maps_history_and_attachments(self) -> None:
        invoke = AsyncMock(return_value=chat_completion("answer"))
        provider = CloudChatProvider(
            CHAT_CONFIG, get_client=lambda config: sentinel.client, invoke=invoke
        )

        response = await provider.send_raw(
            "be brief",
            [
                ConversationTurn(role="user", text="hi"),
                ConversationTurn(role="assistant", text="hello"),
                ConversationTurn(role="user", text="what is this?"),
            ],
            [SCREENSHOT],
        )

        self.assertEqual(response.message, "answer")
        self.assertEqual(response.model, "gpt-5-mini")
        client, params = invoke.await_args.args
        self.assertIs(client, sentinel.client)
        self.assertEqual(params["model"], "gpt-5-mini")
        self.assertEqual(params["max_completion_tokens"], 2000)
        messages = params["messages"]
        self.assertEqual(messages[0], {"role": "system", "content": "be brief"})
        self.assertEqual(messages[2], {"role": "assistant", "content": "hello"})
        self.assertEqual(
            messages[3]["content"],
            [
                {"type": "text", "text": "what is this?"},
                {"type": "image_url", "image_url": {"url": SCREENSHOT.data_url}},
            ],
        )

    async def test_send_raw_honors_output_token_ceiling(self) -> None:
        invoke = AsyncMock(return_value=chat_completion(None))
        provider = CloudChatProvider(CHAT_CONFIG, get_client=lambda config: object(), invoke=invoke)

        response = await provider.send_raw(
            None, [ConversationTurn(role="user", text="Hello")], max_output_tokens=10
        )

        self.assertEqual(response.message, "")
        _, params = invoke.await_args.args
        self.assertEqual(params["max_completion_tokens"], 10)
        self.assertEqual(params["messages"], [{"role": "user", "content": "Hello"}])

    async def test_connection_error_is_wrapped_with_backend_identity(self) -> None:
        invoke = AsyncMock(
            side_effect=APIConnectionError(request=httpx.Request("POST", CHAT_CONFIG.endpoint))
        )
        provider = CloudChatProvider(CHAT_CONFIG, get_client=lambda config: object(), invoke=invoke)

        with self.assertRaises(BackendUnavailableError) as ctx:
            await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])

        self.assertEqual(ctx.exception.provider, "Azure OpenAI")
        self.assertEqual(ctx.exception.endpoint, CHAT_CONFIG.endpoint)
        self.assertIn("Azure OpenAI", str(ctx.exception))


def model_not_found(model: str) -> genai_errors.ClientError:
    return genai_errors.ClientError(
        404, {"error": {"code": 404, "message": f"{model} is not found", "status": "NOT_FOUND"}}
    )


class CloudGenerativeProviderTests(unittest.IsolatedAsyncioTestCase):
    def make_provider(self, invoke: AsyncMock) -> CloudGenerativeProvider:
        return CloudGenerativeProvider(
            CloudGenerativeConfig(api_key="key"),
            get_client=lambda config: sentinel.client,
            invoke=invoke,
        )

    async def test_first_candidate_answers(self) -> None:
        invoke = AsyncMock(return_value=SimpleNamespace(text="hello there"))
        provider = self.make_provider(invoke)

        response = await provider.send_raw(
            "sys",
            [
                ConversationTurn(role="user", text="hi"),
                ConversationTurn(role="assistant", text="hey"),
                ConversationTurn(role="user", text="look"),
            ],
            [SCREENSHOT],
        )

        self.assertEqual(response.message, "hello there")
        self.assertEqual(response.model, "gemini-2.0-flash")
        client, model, history, parts, config = invoke.await_args.args
        self.assertIs(client, sentinel.client)
        self.assertEqual(model, "gemini-2.0-flash")
        self.assertEqual([content.role for content in history], ["user", "model"])
        self.assertEqual(history[1].parts[0].text, "hey")
        self.assertEqual(parts[0].inline_data.mime_type, "image/png")
        self.assertEqual(parts[-1].text, "look")
        self.assertEqual(config.system_instruction, "sys")
        self.assertEqual(config.max_output_tokens, 2048)

    async def test_rejected_candidate_falls_through_to_next(self) -> None:
        invoke = AsyncMock(
            side_effect=[model_not_found("gemini-2.0-flash"), SimpleNamespace(text="ok")]
        )
        provider = self.make_provider(invoke)

        response = await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])

        self.assertEqual(response.model, "gemini-1.5-flash")
        self.assertEqual(provider.model, "gemini-1.5-flash")
        self.assertEqual(invoke.await_count, 2)

    async def test_all_candidates_rejected_raises_no_compatible_model(self) -> None:
        invoke = AsyncMock(
            side_effect=[
                model_not_found("gemini-2.0-flash"),
                model_not_found("gemini-1.5-flash"),
                model_not_found("gemini-pro"),
            ]
        )
        provider = self.make_provider(invoke)

        with self.assertRaises(NoCompatibleModelError) as ctx:
            await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])

        self.assertEqual(
            [model for model, _ in ctx.exception.failures],
            ["gemini-2.0-flash", "gemini-1.5-flash", "gemini-pro"],
        )

    async def test_outage_is_not_treated_as_model_rejection(self) -> None:
        invoke = AsyncMock(
            side_effect=genai_errors.ServerError(
                503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
            )
        )
        provider = self.make_provider(invoke)

        with self.assertRaises(BackendUnavailableError):
            await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])
        self.assertEqual(invoke.await_count, 1)


class LocalProviderTests(unittest.IsolatedAsyncioTestCase):
    def make_provider(self, handler) -> LocalProvider:
        return LocalProvider(
            LocalConfig(base_url="http://ollama.local:11434/", model="llama3.2"),
            get_client=lambda config: httpx.AsyncClient(
                base_url="http://ollama.local:11434", transport=httpx.MockTransport(handler)
            ),
        )

    async def test_generate_sends_only_final_user_turn(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/generate":
                seen.append(json.loads(request.content.decode("utf-8")))
                return httpx.Response(200, json={"response": "local answer", "done": True})
            return httpx.Response(404)

        provider = self.make_provider(handler)
        response = await provider.send_raw(
            "sys",
            [
                ConversationTurn(role="user", text="earlier"),
                ConversationTurn(role="assistant", text="reply"),
                ConversationTurn(role="user", text="now"),
            ],
            [SCREENSHOT],
        )

        self.assertEqual(response.message, "local answer")
        self.assertEqual(provider.endpoint, "http://ollama.local:11434")
        body = seen[0]
        self.assertEqual(body["model"], "llama3.2")
        self.assertEqual(body["prompt"], "now")
        self.assertEqual(body["system"], "sys")
        self.assertFalse(body["stream"])
        self.assertEqual(body["options"], {"temperature": 0.7, "top_p": 0.9})
        self.assertNotIn(SCREENSHOT.payload(), json.dumps(body))

    async def test_error_status_raises_backend_unavailable_naming_endpoint(self) -> None:
        provider = self.make_provider(lambda request: httpx.Response(500))

        with self.assertRaises(BackendUnavailableError) as ctx:
            await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])

        self.assertIn("http://ollama.local:11434", str(ctx.exception))
        self.assertIn("500", str(ctx.exception))

    async def test_network_failure_raises_backend_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = self.make_provider(handler)

        with self.assertRaisesRegex(BackendUnavailableError, "Failed to connect to Ollama"):
            await provider.send_raw(None, [ConversationTurn(role="user", text="hi")])
        self.assertFalse(await provider.is_available())

    async def test_list_models_returns_server_order(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/tags":
                return httpx.Response(
                    200, json={"models": [{"name": "mistral"}, {"name": "llama3.2"}, {}]}
                )
            return httpx.Response(404)

        provider = self.make_provider(handler)

        self.assertEqual(await provider.list_models(), ["mistral", "llama3.2"])
        self.assertTrue(await provider.is_available())


class ProviderFactoryTests(unittest.TestCase):
    def test_builds_client_for_each_variant_without_network(self) -> None:
        self.assertIsInstance(build_provider_client(CHAT_CONFIG), CloudChatProvider)
        self.assertIsInstance(
            build_provider_client(CloudGenerativeConfig(api_key="key")), CloudGenerativeProvider
        )
        local = build_provider_client(LocalConfig())
        self.assertIsInstance(local, LocalProvider)
        self.assertEqual(local.model, "llama3.2")
        self.assertFalse(local.supports_attachments)


if __name__ == "__main__":
    unittest.main()
