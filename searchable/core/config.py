from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./searchable.db"
    SQL_ECHO: bool = False

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def validate_database_url(cls, v):
        if not v or not str(v).strip():
            raise ValueError('DATABASE_URL must be set and cannot be empty')
        return v

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Searchable"

    # Search pagination
    SEARCH_DEFAULT_PAGE_SIZE: int = 20
    SEARCH_MAX_PAGE_SIZE: int = 100

    @field_validator('SEARCH_DEFAULT_PAGE_SIZE', 'SEARCH_MAX_PAGE_SIZE')
    @classmethod
    def validate_page_size(cls, v, info):
        if v < 1:
            raise ValueError(f'{info.field_name} must be at least 1')
        return v

    @field_validator('SEARCH_MAX_PAGE_SIZE')
    @classmethod
    def validate_max_page_size(cls, v, info):
        default = info.data.get('SEARCH_DEFAULT_PAGE_SIZE')
        if default is not None and v < default:
            raise ValueError('SEARCH_MAX_PAGE_SIZE must be greater than or equal to SEARCH_DEFAULT_PAGE_SIZE')
        return v

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
