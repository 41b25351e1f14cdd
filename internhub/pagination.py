"""
Skip/take pagination shared by every list endpoint (take is capped at 50).
"""

from dataclasses import dataclass

from fastapi import Query


@dataclass
class Page:
    skip: int
    take: int

    def apply(self, query):
        return query.offset(self.skip).limit(self.take)


def page_params(skip: int = Query(0, ge=0), take: int = Query(10, ge=1, le=50)) -> Page:
    return Page(skip=skip, take=take)
