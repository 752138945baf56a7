from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single setting a client needs before it can talk to the API.

    Attributes:
        env_key (str): Name of the environment variable, without the client prefix.
        val_type (str): Expected type of the value: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset.
            None marks the setting as required.
        shared (bool): Read the key as-is instead of prefixing it with the client type,
            for settings every client reads (e.g. API_URL).
    """

    env_key: str
    val_type: str = "string"
    default: str | int | float | bool | list | None = None
    shared: bool = False
