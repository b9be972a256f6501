# gateway.py — Projects procedure definitions onto the REST and RPC transports
#
# REST: one route per procedure at /api{path}; path params from the URL, the
#       remaining input from the query string (GET/DELETE) or JSON body.
# RPC:  one route per procedure at /api/trpc/{name}; queries are GET with an
#       optional ?input=<json>, mutations are POST with a JSON body.

import re
import json
import inspect
import logging
from typing import Annotated, Dict, List, Optional, Type

from fastapi import APIRouter, Body, Depends, FastAPI, Path, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, create_model

from context import Context, get_context
from errors import ApiError, BadRequest, InternalServerError
from procedures import Procedure, ProcedureRouter

logger = logging.getLogger("kanbex.gateway")

REST_PREFIX = "/api"
RPC_PREFIX = "/api/trpc"

_PATH_PARAM = re.compile(r"{(\w+)}")


class ErrorOut(BaseModel):
    detail: str
    code: str
    request_id: Optional[str] = None
    issues: Optional[list] = None


ERROR_RESPONSES = {
    400: {"model": ErrorOut, "description": "Invalid input"},
    401: {"model": ErrorOut, "description": "Missing or invalid bearer token"},
    404: {"model": ErrorOut, "description": "Not found or not owned by the caller"},
    500: {"model": ErrorOut, "description": "Internal server error"},
}


def _camel(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[._]", name))


def _transport_model(procedure: Procedure, exclude: List[str]) -> Optional[Type[BaseModel]]:
    """Input model minus the fields carried in the URL path"""
    if not exclude:
        return procedure.input if procedure.input.model_fields else None
    fields = {
        name: (f.annotation, f)
        for name, f in procedure.input.model_fields.items()
        if name not in exclude
    }
    if not fields:
        return None
    suffix = "Query" if procedure.method in ("GET", "DELETE") else "Body"
    return create_model(f"{_camel(procedure.name)}{suffix}", **fields)


def _rest_endpoint(procedure: Procedure):
    path_params = _PATH_PARAM.findall(procedure.path)
    fields = procedure.input.model_fields
    kw = inspect.Parameter.KEYWORD_ONLY

    params = [inspect.Parameter("ctx", kw, annotation=Context, default=Depends(get_context))]
    for name in path_params:
        params.append(inspect.Parameter(
            name, kw, annotation=Annotated[fields[name].annotation, Path()],
        ))

    model = _transport_model(procedure, path_params)
    if model is not None:
        if procedure.method in ("GET", "DELETE"):
            params.append(inspect.Parameter("payload", kw, annotation=Annotated[model, Query()]))
        else:
            optional = not any(f.is_required() for f in model.model_fields.values())
            params.append(inspect.Parameter(
                "payload", kw,
                annotation=Annotated[model, Body()],
                default=None if optional else inspect.Parameter.empty,
            ))

    async def endpoint(ctx: Context, payload: Optional[BaseModel] = None, **path_values):
        raw = dict(path_values)
        if payload is not None:
            raw.update(payload.model_dump(exclude_unset=True))
        return await procedure.call(ctx, raw)

    endpoint.__signature__ = inspect.Signature(params)
    endpoint.__name__ = procedure.name.replace(".", "_")
    return endpoint


def build_rest_router(procedures: List[Procedure]) -> APIRouter:
    router = APIRouter(prefix=REST_PREFIX)
    for procedure in procedures:
        router.add_api_route(
            procedure.path,
            _rest_endpoint(procedure),
            methods=[procedure.method],
            response_model=procedure.output,
            summary=procedure.summary or None,
            tags=procedure.tags,
            name=procedure.name,
            operation_id=procedure.name.replace(".", "_"),
            responses=ERROR_RESPONSES,
            openapi_extra={
                "x-rpc-procedure": procedure.name,
                "x-rpc-kind": procedure.kind,
            },
        )
    return router


async def _read_rpc_input(procedure: Procedure, request: Request) -> Optional[dict]:
    if procedure.kind == "query":
        encoded = request.query_params.get("input")
    else:
        encoded = await request.body()
    if not encoded:
        return None
    # UnicodeDecodeError is a ValueError too
    try:
        return json.loads(encoded)
    except ValueError:
        raise BadRequest("Input is not valid JSON")


def _rpc_endpoint(procedure: Procedure):
    async def endpoint(request: Request, ctx: Context = Depends(get_context)):
        try:
            raw = await _read_rpc_input(procedure, request)
            output = await procedure.call(ctx, raw)
        except ApiError as e:
            return JSONResponse(status_code=e.status_code, content=e.to_rpc(procedure.name), headers=e.headers)
        except Exception as e:
            logger.error(f"{procedure.name} failed: {e} [rid={ctx.request_id}]", exc_info=True)
            err = InternalServerError()
            return JSONResponse(status_code=err.status_code, content=err.to_rpc(procedure.name))
        return {"result": {"data": output.model_dump(mode="json")}}

    endpoint.__name__ = f"rpc_{procedure.name.replace('.', '_')}"
    return endpoint


def build_rpc_router(procedures: List[Procedure]) -> APIRouter:
    router = APIRouter(prefix=RPC_PREFIX)
    for procedure in procedures:
        router.add_api_route(
            f"/{procedure.name}",
            _rpc_endpoint(procedure),
            methods=["GET" if procedure.kind == "query" else "POST"],
            name=f"rpc:{procedure.name}",
            include_in_schema=False,
        )
    return router


def collect(routers: List[ProcedureRouter]) -> List[Procedure]:
    """Flatten routers, rejecting duplicate names or method+path pairs"""
    procedures: List[Procedure] = []
    names: Dict[str, Procedure] = {}
    routes: Dict[tuple, Procedure] = {}
    for router in routers:
        for procedure in router.procedures:
            route = (procedure.method, procedure.path)
            if procedure.name in names:
                raise ValueError(f"Duplicate procedure name: {procedure.name}")
            if route in routes:
                raise ValueError(
                    f"{procedure.name} and {routes[route].name} both map to "
                    f"{procedure.method} {procedure.path}"
                )
            names[procedure.name] = procedure
            routes[route] = procedure
            procedures.append(procedure)
    return procedures


def mount(app: FastAPI, routers: List[ProcedureRouter]) -> List[Procedure]:
    procedures = collect(routers)
    app.include_router(build_rest_router(procedures))
    app.include_router(build_rpc_router(procedures))
    logger.info(f"Mounted {len(procedures)} procedures on REST and RPC transports")
    return procedures
