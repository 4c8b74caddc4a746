from pydantic_settings import BaseSettings


class GatewaySettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = {"env_prefix": "GATEWAY_"}


class ASRSettings(BaseSettings):
    base_url: str = "https://member.bilibili.com/x/bcut/rubick-interface"
    request_timeout_s: float = 30.0
    max_retries: int = 500
    retry_base_delay_s: float = 1.0
    retry_long_delay_s: float = 3.0
    upload_concurrency: int = 1
    cache_dir: str = "./cache"
    use_cache: bool = True

    model_config = {"env_prefix": "ASR_"}


class SummarizerSettings(BaseSettings):
    api_url: str = "https://api.xiaomimimo.com/v1/chat/completions"
    api_key: str = ""
    model: str = "mimo-v2-flash"
    custom_prompt: str = ""
    timeout_s: float = 120.0

    model_config = {"env_prefix": "AI_"}
