from regintel.models.conversation_context import ConversationContextRecord  # noqa: F401
