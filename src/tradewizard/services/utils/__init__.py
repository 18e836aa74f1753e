"""Service helpers shared by routers."""
from tradewizard.services.utils.stream_handler import (handle_websocket_stream,
                                                       parse_symbols_param)

__all__ = ["handle_websocket_stream", "parse_symbols_param"]
