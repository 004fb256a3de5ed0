import os


_DEFAULT_ICE_SERVERS = ",".join(
    [
        "stun:stun.l.google.com:19302",
        "stun:stun1.l.google.com:19302",
        "stun:stun2.l.google.com:19302",
        "stun:stun3.l.google.com:19302",
        "stun:stun4.l.google.com:19302",
    ]
)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Sessions and room lifetime
    SESSION_TTL_SEC = int(os.environ.get("SESSION_TTL_SEC", "86400"))
    ROOM_TTL_SEC = int(os.environ.get("ROOM_TTL_SEC", "86400"))
    REAPER_ENABLED = os.environ.get("REAPER_ENABLED", "1") == "1"
    REAPER_INTERVAL_SEC = int(os.environ.get("REAPER_INTERVAL_SEC", "300"))

    # Game
    REVEAL_DELAY_SEC = int(os.environ.get("REVEAL_DELAY_SEC", "3"))
    CHOOSE_TIMEOUT_TICKS = int(os.environ.get("CHOOSE_TIMEOUT_TICKS", "15"))
    CHAT_HISTORY_LIMIT = int(os.environ.get("CHAT_HISTORY_LIMIT", "500"))
    # Promote another player when the host leaves. Off: the host seat is fixed.
    HOST_FAILOVER = os.environ.get("HOST_FAILOVER", "0") == "1"

    # Voice chat
    ICE_SERVERS = [
        u.strip()
        for u in os.environ.get("ICE_SERVERS", _DEFAULT_ICE_SERVERS).split(",")
        if u.strip()
    ]
