"""LangGraph-based orchestration strategy for provider calls."""

from typing import NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from wingman_api.providers.base import ProviderClient, ProviderResponse

from .base import ChatOrchestrator, ProviderCall


class ProviderGraphState(TypedDict):
    client: ProviderClient
    call: ProviderCall
    response: NotRequired[ProviderResponse]


class LangGraphChatOrchestrator(ChatOrchestrator):
    def __init__(self) -> None:
        graph = StateGraph(ProviderGraphState)
        graph.add_node("invoke_provider", self._invoke_provider)
        graph.add_edge(START, "invoke_provider")
        graph.add_edge("invoke_provider", END)
        self._graph = graph.compile()

    async def _invoke_provider(self, state: ProviderGraphState) -> dict[str, ProviderResponse]:
        call = state["call"]
        return {
            "response": await state["client"].send_raw(
                call.system_prompt,
                call.messages,
                call.attachments,
                call.max_output_tokens,
            )
        }

    async def run(self, client: ProviderClient, call: ProviderCall) -> ProviderResponse:
        initial_state: ProviderGraphState = {"client": client, "call": call}
        result = cast("ProviderGraphState", await self._graph.ainvoke(initial_state))
        response = result.get("response")
        if response is None:
            raise RuntimeError("LangGraph execution did not return a provider response")
        return response
