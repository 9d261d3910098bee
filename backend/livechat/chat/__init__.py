"""Room state and broadcast engine for the single chat room."""
