SERVICE_NAME = "streaming-agent-service"
SQUAD_NAME = "assistants"

FALLBACK_RESPONSE = "I could not generate a response"
