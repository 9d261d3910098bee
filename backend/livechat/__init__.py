"""LiveChat: realtime group-chat relay."""
