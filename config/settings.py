from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # TRUD account (must be subscribed to the UK Drug Extension RF2 item)
    email: str | None = Field(default=None)
    password: str | None = Field(default=None)
    trud_base_url: str = Field(default="https://isd.digital.nhs.uk/trud")
    trud_item_path: str = Field(
        default="/users/authenticated/filters/0/categories/8/items/659/releases"
    )

    # Paths
    files_dir: Path = Field(default=Path("files"))
    web_dir: Path = Field(default=Path("web"))
    snomed_definitions_path: Path = Field(
        default=Path("../nhs-snomed/files/processed/latest/defs.json")
    )

    # NHS terminology browser used for concepts missing from the dictionary
    browser_api_url: str = Field(
        default="https://termbrowser.nhs.uk/sct-browser-api/snomed/uk-edition/v20230927/concepts"
    )
    lookup_batch_size: int = Field(default=40)
    lookup_delay_min_ms: int = Field(default=2000)
    lookup_delay_max_ms: int = Field(default=7000)

    # Cloudflare R2 (S3 compatible)
    access_key_id: str | None = Field(default=None)
    secret_access_key: str | None = Field(default=None)
    account_id: str | None = Field(default=None)
    bucket: str = Field(default="nhs-drug-refset")
    s3_key_prefix: str = Field(default="files/processed")

    @property
    def zip_dir(self) -> Path:
        return self.files_dir / "zip"

    @property
    def raw_dir(self) -> Path:
        return self.files_dir / "raw"

    @property
    def processed_dir(self) -> Path:
        return self.files_dir / "processed"

    @property
    def code_lookup_path(self) -> Path:
        return self.files_dir / "code-lookup.json"

    @property
    def routes_path(self) -> Path:
        return self.web_dir / "routes.json"

    @property
    def r2_endpoint(self) -> str:
        return f"https://{self.account_id}.r2.cloudflarestorage.com"

    @model_validator(mode="after")
    def _validate_lookup_config(self) -> "Settings":
        if self.lookup_batch_size < 1:
            raise ValueError("LOOKUP_BATCH_SIZE must be at least 1.")
        if self.lookup_delay_min_ms > self.lookup_delay_max_ms:
            raise ValueError(
                "LOOKUP_DELAY_MIN_MS must not exceed LOOKUP_DELAY_MAX_MS."
            )
        return self
