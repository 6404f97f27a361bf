from __future__ import annotations
from dataclasses import asdict
from typing import Any
from flask import Flask, request, jsonify, Response

from kdvsim.bulk.aggregate import BulkResult, ProductRow, compute_bulk_results
from kdvsim.bulk.importer import decode_row, load_products_csv
from kdvsim.config.env import get_engine_constants, get_store_config
from kdvsim.engine.checks import statement_checks
from kdvsim.engine.parameters import (
    DEFAULT_PARAMETERS,
    COMPARISON_ALTERNATIVE,
    parameters_from_mapping,
    plausibility_warnings,
)
from kdvsim.engine.pnl import compute_pnl
from kdvsim.exports.reports import assumptions_md, pnl_md, sensitivity_md, validation_report_md
from kdvsim.exports.writers import write_bulk_results, write_bulk_template
from kdvsim.scenarios.comparison import compare_scenarios
from kdvsim.scenarios.sensitivity import run_multi_variable_scenario, run_sensitivity, summarize_sensitivity
from kdvsim.solver.targets import solve_break_even, solve_target_price, solve_target_quantity
from kdvsim.store.snapshots import FileSnapshotStore, reset_to_defaults, validate_key

import os
import time
import logging
from collections import deque, defaultdict

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.setdefault('ENGINE_CONSTANTS', get_engine_constants())

# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return os.environ.get('API_KEY')


def _get_rate_limit() -> tuple[int, float]:
    n = app.config.get('RATE_LIMIT_N')
    w = app.config.get('RATE_LIMIT_WINDOW_SEC')
    if n is None:
        n = int(os.environ.get('RATE_LIMIT_N', '30'))
    if w is None:
        w = float(os.environ.get('RATE_LIMIT_WINDOW_SEC', '1.0'))
    return int(n), float(w)


def _get_store():
    store = app.config.get('SNAPSHOT_STORE')
    if store is None:
        store = FileSnapshotStore(get_store_config().root)
        app.config['SNAPSHOT_STORE'] = store
    return store


def _constants():
    return app.config['ENGINE_CONSTANTS']


_recent: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=100))


def _trust_proxy() -> bool:
    if 'TRUST_PROXY' in app.config:
        return bool(app.config.get('TRUST_PROXY'))
    return os.environ.get('TRUST_PROXY', '').lower() in ('1', 'true', 'yes')


def _client_ip() -> str:
    # Honour X-Forwarded-For only behind a trusted proxy
    xff = request.headers.get('X-Forwarded-For') if _trust_proxy() else None
    if xff:
        return xff.split(',')[0].strip()
    return request.remote_addr or 'anon'


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


def _check_rate_limit(ip: str):
    # Allow if rate limiting disabled or N <= 0
    n, window = _get_rate_limit()
    if n <= 0:
        return None
    now = time.time()
    dq = _recent[ip]
    for other in [k for k, v in _recent.items() if k != ip and (not v or now - v[-1] > window)]:
        del _recent[other]
    # Drop old entries outside window
    while dq and now - dq[0] > window:
        dq.popleft()
    if len(dq) >= n:
        retry = max(0.0, window - (now - dq[0]))
        resp = jsonify({'error': 'rate_limited'})
        resp.status_code = 429
        resp.headers['Retry-After'] = f"{retry:.2f}"
        return resp
    dq.append(now)
    return None


@app.before_request
def _auth_and_rate_limit():
    unauthorized = _check_api_key()
    if unauthorized is not None:
        return unauthorized
    # Rate limit computations and writes only
    if request.method == 'POST':
        rl = _check_rate_limit(_client_ip())
        if rl is not None:
            return rl
    return None


@app.errorhandler(ValueError)
def _bad_request(e: ValueError):
    logger.warning("rejected %s %s: %s", request.method, request.path, e)
    return jsonify({'error': str(e)}), 400


def _payload() -> dict[str, Any]:
    body = request.get_json(force=True, silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValueError('JSON object expected')
    return body


def _params(data: Any, base=DEFAULT_PARAMETERS):
    if data is None:
        return base
    if not isinstance(data, dict):
        raise ValueError('parameters must be a JSON object')
    return parameters_from_mapping(data, base)


@app.get('/defaults')
def get_defaults():
    return jsonify({
        'parameters': asdict(DEFAULT_PARAMETERS),
        'comparison_alternative': asdict(COMPARISON_ALTERNATIVE),
        'constants': asdict(_constants()),
    })


@app.post('/pnl')
def post_pnl():
    params = _params(_payload())
    result = compute_pnl(params, _constants())
    return jsonify({
        'parameters': asdict(params),
        'result': asdict(result),
        'warnings': plausibility_warnings(params),
    })


@app.post('/solve')
def post_solve():
    params = _params(_payload())
    target = params.target_profit
    c = _constants()
    return jsonify({
        'break_even_quantity': solve_break_even(params, c),
        'target_quantity': solve_target_quantity(params, target, c),
        'target_unit_price': solve_target_price(params, target, c),
        'target_profit': target,
    })


@app.post('/sensitivity')
def post_sensitivity():
    payload = _payload()
    params = _params(payload.get('parameters'))
    variable = payload.get('variable') or 'unit_price'
    try:
        start = float(payload.get('start', -20))
        end = float(payload.get('end', 20))
        step = float(payload.get('step', 5))
    except (TypeError, ValueError):
        raise ValueError('start, end and step must be numeric') from None
    points = run_sensitivity(params, variable, start, end, step, _constants())
    summary = summarize_sensitivity(points, variable)
    return jsonify({
        'variable': variable,
        'points': [{'deviation_percent': p.deviation_percent, 'label': p.label, 'net_profit': p.net_profit} for p in points],
        'summary': None if summary is None else {
            'impact': summary.impact,
            'baseline': summary.baseline,
            'best': asdict(summary.best),
            'worst': asdict(summary.worst),
            'best_difference': summary.best_difference,
            'worst_difference': summary.worst_difference,
        },
        'report': sensitivity_md(variable, points, summary),
    })


@app.post('/scenario')
def post_scenario():
    payload = _payload()
    params = _params(payload.get('parameters'))
    raw = payload.get('perturbations') or []
    if not isinstance(raw, list):
        raise ValueError('perturbations must be a list')
    perturbations = []
    for item in raw:
        try:
            if isinstance(item, dict):
                perturbations.append((str(item['variable']), float(item['percent'])))
            else:
                name, pct = item
                perturbations.append((str(name), float(pct)))
        except (KeyError, TypeError, ValueError):
            raise ValueError('each perturbation needs a variable and a numeric percent') from None
    delta = run_multi_variable_scenario(params, perturbations, _constants())
    return jsonify({'net_profit_delta': delta, 'perturbations': perturbations})


@app.post('/compare')
def post_compare():
    payload = _payload()
    first = _params(payload.get('first'))
    second = _params(payload.get('second'), COMPARISON_ALTERNATIVE)
    diffs = compare_scenarios(first, second, _constants())
    return jsonify({'metrics': [
        {'key': d.key, 'label': d.label, 'first': d.first, 'second': d.second, 'diff': d.diff} for d in diffs
    ]})


@app.post('/report')
def post_report():
    params = _params(_payload())
    result = compute_pnl(params, _constants())
    body = "\n".join([
        assumptions_md(asdict(params), warnings=plausibility_warnings(params)),
        pnl_md(result),
        validation_report_md(statement_checks(result)),
    ])
    return Response(body, mimetype='text/markdown')


def _bulk_products(payload: dict[str, Any]) -> list[ProductRow]:
    if 'csv' in payload:
        return load_products_csv(str(payload['csv']))
    rows = payload.get('products') or []
    if not isinstance(rows, list):
        raise ValueError('products must be a list')
    out: list[ProductRow] = []
    for r in rows:
        if isinstance(r, dict):
            r = [r.get('name'), r.get('total_cost'), r.get('total_quantity'),
                 r.get('total_revenue_inclusive'), r.get('vat_rate')]
        if not isinstance(r, list):
            raise ValueError('each product must be an object or a list')
        product = decode_row(r)
        if product is not None:
            out.append(product)
    return out


def _bulk_json(result: BulkResult) -> dict[str, Any]:
    return {
        'rows': [{
            'product': asdict(r.product),
            'quantity_share': r.quantity_share,
            'total_expenses': r.total_expenses,
            'profit_margin': r.profit_margin,
            'result': asdict(r.statement),
        } for r in result.rows],
        'aggregate': asdict(result.aggregate),
        'rows_net_profit': result.rows_net_profit,
    }


@app.post('/bulk')
def post_bulk():
    payload = _payload()
    params = _params(payload.get('parameters'))
    products = _bulk_products(payload)
    result = compute_bulk_results(
        products,
        params.variable_expenses,
        params.fixed_expenses,
        cost_includes_vat=bool(payload.get('cost_includes_vat', False)),
        constants=_constants(),
    )
    if request.args.get('format') == 'csv':
        return Response(write_bulk_results(result), mimetype='text/csv')
    return jsonify(_bulk_json(result))


@app.get('/bulk/template.csv')
def get_bulk_template():
    return Response(write_bulk_template(), mimetype='text/csv', headers={
        'Content-Disposition': 'attachment; filename="bulk_simulation_template.csv"'
    })


@app.get('/snapshots/<key>')
def get_snapshot(key: str):
    value = _get_store().get(validate_key(key))
    if value is None:
        return jsonify({'error': 'not_found'}), 404
    return jsonify({'key': key, 'value': value})


@app.put('/snapshots/<key>')
def put_snapshot(key: str):
    body = request.get_json(force=True, silent=True)
    if body is None:
        raise ValueError('JSON body expected')
    _get_store().set(validate_key(key), body)
    return jsonify({'key': key, 'status': 'saved'})


@app.delete('/snapshots/<key>')
def delete_snapshot(key: str):
    _get_store().clear(validate_key(key))
    return jsonify({'key': key, 'status': 'cleared'})


@app.get('/snapshots')
def list_snapshots():
    return jsonify({'keys': _get_store().keys()})


@app.post('/snapshots/reset')
def post_reset():
    reset_to_defaults(_get_store())
    return jsonify({'status': 'reset', 'defaults': asdict(DEFAULT_PARAMETERS)})


if __name__ == '__main__':
    from kdvsim.config.env import configure_logging
    configure_logging()
    app.run(host='0.0.0.0', port=8000)
