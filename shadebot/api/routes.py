import math

from fastapi import APIRouter, HTTPException, Request, Response

from shadebot.errors import FetchError, TokenNotFoundError
from shadebot.services import token_query

router = APIRouter()


def _refresh_or_stale(request: Request, response: Response):
    cache = request.app.state.token_cache
    try:
        return cache.ensure_fresh()
    except FetchError as exc:
        print(f"[CACHE][serve_stale] path={request.url.path} error={exc}", flush=True)
        response.headers['X-Cache-Stale'] = '1'
        return cache.current_snapshot()


@router.get('/health')
def health(request: Request):
    snapshot = request.app.state.token_cache.current_snapshot()
    return {'ok': True, 'snapshot_version': snapshot.version}


@router.get('/tokens')
def search_tokens(request: Request, response: Response, q: str = ''):
    snapshot = _refresh_or_stale(request, response)
    return [row.model_dump() for row in token_query.search(snapshot, q)]


@router.get('/tokens/ratio')
def token_ratio(base: str, quote: str, request: Request, response: Response):
    snapshot = _refresh_or_stale(request, response)
    try:
        ratio = token_query.compute_ratio(snapshot, base, quote)
    except TokenNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        'base': base,
        'quote': quote,
        'ratio': ratio if math.isfinite(ratio) else None,
        'snapshot_version': snapshot.version,
    }


@router.post('/cache/refresh')
def refresh_cache(request: Request):
    cache = request.app.state.token_cache
    try:
        snapshot = cache.ensure_fresh()
    except FetchError as exc:
        raise HTTPException(status_code=503, detail=exc.code) from exc
    return {'snapshot_version': snapshot.version, 'snapshot_size': len(snapshot.tokens)}


@router.get('/metrics/cache')
def cache_metrics(request: Request):
    return request.app.state.token_cache.metrics()
