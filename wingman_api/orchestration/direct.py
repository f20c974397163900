"""Direct provider dispatch orchestration."""

from wingman_api.orchestration.base import ChatOrchestrator, ProviderCall
from wingman_api.providers.base import ProviderClient, ProviderResponse


class DirectChatOrchestrator(ChatOrchestrator):
    async def run(self, client: ProviderClient, call: ProviderCall) -> ProviderResponse:
        return await client.send_raw(
            call.system_prompt,
            call.messages,
            call.attachments,
            call.max_output_tokens,
        )
