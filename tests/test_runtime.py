import os
import unittest
from unittest.mock import patch

from wingman_api.constants import DEFAULT_LOCAL_BASE_URL, DEFAULT_LOCAL_MODEL
from wingman_api.infra import runtime
from wingman_api.schemas import CloudChatConfig, CloudGenerativeConfig, LocalConfig


class StartupConfigTests(unittest.TestCase):
    def test_no_provider_selected_returns_none(self) -> None:
        self.assertIsNone(runtime.load_startup_config({}))
        self.assertIsNone(runtime.load_startup_config({"WINGMAN_PROVIDER": "  "}))

    def test_unknown_provider_returns_none(self) -> None:
        self.assertIsNone(runtime.load_startup_config({"WINGMAN_PROVIDER": "mainframe"}))

    def test_cloud_chat_reads_azure_variables(self) -> None:
        config = runtime.load_startup_config(
            {
                "WINGMAN_PROVIDER": "cloud_chat",
                "AZURE_OPENAI_API_KEY": "key",
                "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
                "AZURE_OPENAI_DEPLOYMENT": "gpt-5-mini",
            }
        )

        self.assertEqual(
            config,
            CloudChatConfig(
                api_key="key",
                endpoint="https://example.openai.azure.com",
                deployment="gpt-5-mini",
            ),
        )

    def test_provider_name_is_case_insensitive(self) -> None:
        config = runtime.load_startup_config(
            {"WINGMAN_PROVIDER": "Cloud_Generative", "GEMINI_API_KEY": "g-key"}
        )

        self.assertEqual(config, CloudGenerativeConfig(api_key="g-key"))

    def test_local_defaults_apply_when_variables_absent(self) -> None:
        config = runtime.load_startup_config({"WINGMAN_PROVIDER": "local"})

        self.assertIsInstance(config, LocalConfig)
        self.assertEqual(config.base_url, DEFAULT_LOCAL_BASE_URL)
        self.assertEqual(config.model, DEFAULT_LOCAL_MODEL)

    def test_missing_credentials_are_left_for_the_router_to_reject(self) -> None:
        config = runtime.load_startup_config({"WINGMAN_PROVIDER": "cloud_chat"})

        self.assertIsInstance(config, CloudChatConfig)
        self.assertEqual(config.missing_field(), "api_key")


class LangSmithConfigurationTests(unittest.TestCase):
    def test_tracing_disabled_without_api_key(self) -> None:
        with patch.dict(os.environ, {"LANGSMITH_TRACING": "true"}, clear=True):
            runtime._configure_langsmith(None)

            self.assertNotIn("LANGSMITH_TRACING", os.environ)

    def test_tracing_enabled_with_default_project(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            runtime._configure_langsmith("ls-key")

            self.assertEqual(os.environ["LANGSMITH_TRACING"], "true")
            self.assertEqual(os.environ["LANGSMITH_PROJECT"], "wingman-assistant")

    def test_flush_skipped_when_tracing_disabled(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(
            runtime, "get_cached_client"
        ) as get_client:
            runtime.flush_langsmith_traces()

        get_client.assert_not_called()

    def test_flush_errors_are_logged_not_raised(self) -> None:
        env = {"LANGSMITH_TRACING": "true", "LANGSMITH_API_KEY": "ls-key"}
        with patch.dict(os.environ, env, clear=True), patch.object(
            runtime, "get_cached_client"
        ) as get_client:
            get_client.return_value.flush.side_effect = RuntimeError("network")
            with self.assertLogs(runtime.logger, level="WARNING"):
                runtime.flush_langsmith_traces()


if __name__ == "__main__":
    unittest.main()
