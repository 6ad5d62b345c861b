from pydantic import BaseModel, model_validator


# --- Parsing ---

class ParseTextIn(BaseModel):
    text: str | None = None
    lines: list[str] | None = None  # recognizer output, joined with newlines

    @model_validator(mode="after")
    def check_one_source(self):
        if (self.text is None) == (self.lines is None):
            raise ValueError("Provide exactly one of 'text' or 'lines'")
        return self
