"""
An LLM that replies with canned responses, for tests that must not reach a real model.

A response of the form "raise:message" raises an exception with that message instead of replying.

PROMPT> python -m reformai.llm_util.response_mockllm
"""
import itertools
from typing import Any, Sequence
from llama_index.core.llms import ChatMessage, ChatResponse, MessageRole, MockLLM

RAISE_PREFIX = "raise:"


class ResponseMockLLM(MockLLM):
    """
    Cycles through the given responses, one per call.
    """
    def __init__(self, responses: list[str], **kwargs):
        responses = responses or ["Mock response"]
        super().__init__(max_tokens=max(len(response) for response in responses), **kwargs)
        object.__setattr__(self, 'responses', responses)
        object.__setattr__(self, 'response_cycle', itertools.cycle(responses))
        object.__setattr__(self, 'call_count', 0)

    def _next_response(self) -> str:
        object.__setattr__(self, 'call_count', self.call_count + 1)
        response_text = next(self.response_cycle)
        if response_text.startswith(RAISE_PREFIX):
            raise Exception(response_text[len(RAISE_PREFIX):])
        return response_text

    def chat(self, messages: Sequence[ChatMessage], **kwargs: Any) -> ChatResponse:
        message = ChatMessage(role=MessageRole.ASSISTANT, content=self._next_response())
        return ChatResponse(message=message)

    def _generate_text(self, length: int) -> str:
        return self._next_response()


if __name__ == "__main__":
    llm = ResponseMockLLM(responses=['{"phases": []}', "raise:model unavailable"])
    print(llm.complete("Organize a obra").text)
    try:
        llm.complete("Organize a obra")
    except Exception as e:
        print(f"raised: {e}")
