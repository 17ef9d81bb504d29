from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict


class JobDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    body: str = ""
    markup: str | None = None

    @property
    def has_markup(self) -> bool:
        return bool(self.markup and self.markup.strip())

    def content_hash(self) -> str:
        digest = hashlib.sha256()
        for part in (self.title, self.body, self.markup or ""):
            digest.update(part.encode("utf-8"))
            digest.update(b"\x00")
        return digest.hexdigest()
