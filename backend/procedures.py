# procedures.py — Transport-neutral procedure definitions
#
# A resource router declares each operation once (name, REST method/path,
# input/output models, handler). gateway.py mounts the same Procedure objects
# on the REST and RPC transports.

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError

from context import Context
from errors import BadRequest, Unauthorized, clean_validation_errors

logger = logging.getLogger("kanbex.procedures")

Handler = Callable[[Context, Any], Awaitable[BaseModel]]


class EmptyInput(BaseModel):
    pass


class EmptyOutput(BaseModel):
    pass


@dataclass
class Procedure:
    name: str
    kind: str  # "query" | "mutation"
    method: str
    path: str
    input: Type[BaseModel]
    output: Type[BaseModel]
    handler: Handler
    protected: bool = True
    summary: str = ""
    tags: List[str] = field(default_factory=list)

    async def call(self, ctx: Context, raw: Optional[Dict[str, Any]]) -> BaseModel:
        try:
            data = self.input.model_validate(raw or {})
        except ValidationError as e:
            raise BadRequest("Invalid input", issues=clean_validation_errors(e.errors()))

        if self.protected and ctx.user is None:
            raise Unauthorized()

        try:
            return await self.handler(ctx, data)
        except IntegrityError as e:
            await ctx.db.rollback()
            logger.warning(f"{self.name}: constraint violation: {e.orig} [rid={ctx.request_id}]")
            raise BadRequest("Conflicts with an existing record")


class ProcedureRouter:
    """Collects the procedures of one resource under a dotted namespace"""

    def __init__(self, namespace: str, tags: Optional[List[str]] = None):
        self.namespace = namespace
        self.tags = tags or [namespace]
        self.procedures: List[Procedure] = []

    def _register(self, kind: str, name: str, method: str, path: str,
                  input: Type[BaseModel], output: Type[BaseModel],
                  protected: bool, summary: str):
        def decorator(handler: Handler) -> Handler:
            self.procedures.append(Procedure(
                name=f"{self.namespace}.{name}",
                kind=kind,
                method=method.upper(),
                path=path,
                input=input,
                output=output,
                handler=handler,
                protected=protected,
                summary=summary or (handler.__doc__ or "").strip(),
                tags=list(self.tags),
            ))
            return handler
        return decorator

    def query(self, name: str, *, path: str, output: Type[BaseModel],
              input: Type[BaseModel] = EmptyInput, protected: bool = True,
              summary: str = "", method: str = "GET"):
        return self._register("query", name, method, path, input, output, protected, summary)

    def mutation(self, name: str, *, method: str, path: str,
                 output: Type[BaseModel] = EmptyOutput,
                 input: Type[BaseModel] = EmptyInput, protected: bool = True,
                 summary: str = ""):
        return self._register("mutation", name, method, path, input, output, protected, summary)
