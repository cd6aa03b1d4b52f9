from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Ring AI Gateway"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Command channel
    SERVER_URL: str = ""
    RECONNECT_DELAY_SECONDS: float = 5.0
    HEARTBEAT_INTERVAL_SECONDS: float = 15.0
    WS_PING_INTERVAL_SECONDS: float = 10.0
    WS_OPEN_TIMEOUT_SECONDS: float = 10.0

    # Privileged execution
    ROOT_SHELL: str = "su"
    ROOT_COMMAND_TIMEOUT_SECONDS: float = 10.0

    # tinyalsa helper binaries
    HELPER_BINARY_DIR: str = "bin"
    TINYPLAY_BINARY: str = "tinyplay"

    # Audio routing / injection
    DEVICE_CONFIG_PATH: str = "data/audio_device_config.json"
    AUDIO_CACHE_DIR: str = "cache/audio"
    DEFAULT_AUDIO_PATH: str = "assets/test_audio.wav"
    AUDIO_DOWNLOAD_TIMEOUT_SECONDS: float = 30.0
    PLAYBACK_STOP_TIMEOUT_SECONDS: float = 2.0

    # Call control
    DTMF_TONE_DURATION_MS: int = 150
    DTMF_INTER_DIGIT_GAP_MS: int = 100
    # A dial that never reaches OFFHOOK stops masking IDLE after this long
    DIAL_TIMEOUT_SECONDS: float = 60.0

    model_config = {"env_file": ".env", "case_sensitive": True}


settings = Settings()
