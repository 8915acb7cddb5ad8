from fastapi import Request
from relay.services.chat_service import ChatRelay

def get_relay(request: Request) -> ChatRelay:
    return request.app.state.relay
