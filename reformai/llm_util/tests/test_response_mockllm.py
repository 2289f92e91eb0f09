import unittest
from llama_index.core.llms import ChatMessage, ChatResponse, CompletionResponse, MessageRole
from reformai.llm_util.response_mockllm import ResponseMockLLM


class TestResponseMockLLM(unittest.TestCase):
    def test_complete_cycles_responses(self):
        # Arrange
        llm = ResponseMockLLM(responses=["um", "dois"])

        # Act
        texts = [llm.complete("x").text for _ in range(3)]

        # Assert
        self.assertEqual(texts, ["um", "dois", "um"])
        self.assertEqual(llm.call_count, 3)

    def test_chat(self):
        llm = ResponseMockLLM(responses=["Olá!"])
        response = llm.chat([ChatMessage(role=MessageRole.USER, content="Oi")])
        self.assertIsInstance(response, ChatResponse)
        self.assertEqual(response.message.content, "Olá!")

    def test_complete_returns_completion_response(self):
        llm = ResponseMockLLM(responses=["abc"])
        self.assertIsInstance(llm.complete("x"), CompletionResponse)

    def test_raise(self):
        llm = ResponseMockLLM(responses=["raise:modelo indisponível"])
        with self.assertRaises(Exception) as context:
            llm.complete("x")
        self.assertEqual(str(context.exception), "modelo indisponível")


if __name__ == '__main__':
    unittest.main()
