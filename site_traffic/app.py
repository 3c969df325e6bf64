import base64
import hmac
import sqlite3
from datetime import datetime, timezone
from typing import Mapping

from flask import (
    Blueprint, Flask, Response, abort, current_app, g, jsonify, redirect,
    render_template_string, request, url_for,
)

from .classify import format_referrer
from .config import TrafficConfig
from .environment import RequestEnvironment, system_clock_ms
from .export import events_to_csv
from .logging_config import get_logger, setup_logging
from .models import VisitEvent
from .recorder import VisitRecorder
from .stats import aggregate
from .store import LogStore, ensure_schema

logger = get_logger(__name__)

# transparent 1x1 GIF served by the tracking pixel
PIXEL_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

bp = Blueprint("traffic", __name__)


def traffic_config() -> TrafficConfig:
    return current_app.config["TRAFFIC"]


def request_env() -> RequestEnvironment:
    return RequestEnvironment(request, clock=current_app.config["TRAFFIC_CLOCK"])


# -----------------------------------------------------------------------------
# DB helpers
# -----------------------------------------------------------------------------
def get_db():
    if "db" not in g:
        g.db = sqlite3.connect(traffic_config().db_path)
    return g.db

@bp.teardown_app_request
def close_db(exc):
    db = g.pop("db", None)
    if db:
        db.close()

def get_store() -> LogStore:
    return LogStore(get_db(), traffic_config().storage_key)

def get_recorder() -> VisitRecorder:
    return VisitRecorder(get_store(), traffic_config())

@bp.before_app_request
def before():
    try:
        ensure_schema(get_db())
    except sqlite3.Error as exc:
        # reads treat a missing table as an empty log
        logger.warning("could not prepare visit log table: %s", exc)


# -----------------------------------------------------------------------------
# Access gate / CORS
# -----------------------------------------------------------------------------
def check_token(supplied: str | None, secret: str) -> bool:
    """
    Shared-secret check in front of everything that reads the log.
    """
    if not supplied or not secret:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8"))

def require_token(supplied: str | None) -> None:
    if not check_token(supplied, traffic_config().dash_token):
        logger.info("rejected dashboard token from %s", request.remote_addr)
        abort(403)

@bp.after_app_request
def allow_tracked_origin(resp):
    """
    Let the tracked site post visits from its own origin when it is
    allow-listed. Same-origin deployments never send an Origin we match.
    """
    origin = request.headers.get("Origin")
    if not origin or origin not in traffic_config().cors_allow_origins:
        return resp

    resp.headers["Access-Control-Allow-Origin"] = origin
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
    resp.headers["Access-Control-Max-Age"] = "600"
    resp.vary.add("Origin")
    return resp


# -----------------------------------------------------------------------------
# Ingest routes
# -----------------------------------------------------------------------------
@bp.route("/148a2801968b695634b116e620005dbb.gif")
def pixel():
    """
    Tracking pixel endpoint, requested once the page has loaded:
      <img src="/148a2801968b695634b116e620005dbb.gif?p=/path&r=...&lt=412">
    See RequestEnvironment for the query params it reads.
    """
    env = request_env()
    try:
        load_time = int(request.args.get("lt", "0"))
    except ValueError:
        load_time = 0

    recorder = get_recorder()
    recorder.loaded(recorder.start(env), load_time, env)

    resp = Response(PIXEL_GIF, mimetype="image/gif")
    resp.headers["Cache-Control"] = "no-store, max-age=0"
    return resp


@bp.route("/collect", methods=["POST", "OPTIONS"])
def collect():
    """
    Visit record endpoint. The page snippet posts its record on load and
    again on exit with timeOnPage filled in, e.g.
      { "timestamp": 1735776000000, "referrer": "https://www.google.com/",
        "userAgent": "...", "path": "/a", "loadTime": 412, "timeOnPage": 30 }
    Any "date" sent along is ignored; it is derived from timestamp.
    """
    if request.method == "OPTIONS":
        return ("", 200)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"ok": False, "error": "expected a JSON object"}), 400

    env = request_env()
    now = env.now_ms()
    record = dict(data)
    record.setdefault("timestamp", now)
    record.setdefault("userAgent", env.user_agent)

    try:
        event = VisitEvent.from_dict(record)
    except ValueError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 400

    get_recorder().save(event, now)
    return jsonify({"ok": True})


# -----------------------------------------------------------------------------
# Visits-per-day chart (inline SVG)
# -----------------------------------------------------------------------------
def build_sparkline(visits_by_date: Mapping[str, int], width=320, height=60):
    """
    Polyline of daily visits, oldest day on the left.
    visits_by_date is newest first, as StatsSummary keeps it.
    Returns (svg markup, visits on the newest day).
    """
    counts = list(reversed(list(visits_by_date.values())))
    path = ""
    if counts:
        low, high = min(counts), max(counts)
        step = width / (len(counts) - 1) if len(counts) > 1 else 0
        x0 = 0 if len(counts) > 1 else width / 2
        pad = 2
        scale = (height - 2 * pad) / ((high - low) or 1)
        points = [
            f"{x0 + i * step:.1f},{height - pad - (c - low) * scale:.1f}"
            for i, c in enumerate(counts)
        ]
        path = f'<path d="M{" L".join(points)}"/>'

    svg = (
        f'<svg class="spark" width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
        f'fill="none" stroke="currentColor" stroke-width="2">{path}</svg>'
    )
    return svg, counts[-1] if counts else 0


# -----------------------------------------------------------------------------
# Report
# -----------------------------------------------------------------------------
REPORT_STYLE = """
body{margin:0;padding:2rem;background:#0f172a;color:#e2e8f0;
  font:14px/1.4 system-ui,-apple-system,"Segoe UI",Roboto,sans-serif}
h1{font-size:1.2rem;margin:0 0 .25rem}
.note{font-size:.8rem;color:#64748b;margin:0 0 2rem}
.cards,.tables{display:grid;gap:1rem;margin-bottom:2rem;
  grid-template-columns:repeat(auto-fit,minmax(min(260px,100%),1fr))}
.box{background:#1e293b;border-radius:1rem;padding:1rem 1.25rem}
.label{font-size:.7rem;color:#94a3b8}
.big{font-size:1.4rem;font-weight:600}
.spark{color:#38bdf8;max-width:100%}
table{width:100%;border-collapse:collapse}
th,td{padding:.4rem .25rem;border-bottom:1px solid #334155;text-align:left}
.num{text-align:right;font-variant-numeric:tabular-nums}
.actions{display:flex;gap:.75rem}
.actions a,.actions button{font:inherit;padding:.5rem 1rem;border:0;border-radius:.5rem;
  color:#fff;background:#334155;text-decoration:none;cursor:pointer}
.actions button{background:#dc2626}
"""

EMPTY_HTML = """
<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"/><title>Traffic Report</title><style>{{ style | safe }}</style></head>
<body>
<h1>Traffic Report</h1>
<p class="note">No data collected yet.</p>
</body>
</html>
"""

REPORT_HTML = """
{% macro breakdown(title, heading, counts, show=None) %}
<div class="box">
  <h2 class="label">{{ title }}</h2>
  <table>
    <tr><th>{{ heading }}</th><th class="num">Visits</th><th class="num">%</th></tr>
    {% for key, count in counts.items() %}
    <tr>
      <td>{{ show(key) if show else key }}</td>
      <td class="num">{{ count }}</td>
      <td class="num">{{ "%.1f"|format(s.share(count)) }}%</td>
    </tr>
    {% endfor %}
  </table>
</div>
{% endmacro %}
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<meta name="viewport" content="width=device-width,initial-scale=1"/>
<title>Traffic Report</title>
<style>{{ style | safe }}</style>
</head>
<body>

<h1>Traffic Report · {{ s.total_visits }} visits in the last {{ retention }} days</h1>
<p class="note">A visit seen both on load and on exit is counted twice.</p>

<section class="cards">
  <div class="box">
    <div class="label">Daily visits (avg)</div>
    <div class="big">{{ "%.1f"|format(s.average_daily_visits) }}</div>
  </div>
  <div class="box">
    <div class="label">Time on page (avg)</div>
    <div class="big">{{ "%.1f"|format(s.average_time_on_page) }} s</div>
  </div>
  <div class="box">
    <div class="label">Load time (avg, measured loads only)</div>
    <div class="big">{{ "%.0f"|format(s.average_load_time) }} ms</div>
  </div>
  <div class="box">
    <div class="label">Visits per day · latest {{ spark_last }}</div>
    {{ spark_svg | safe }}
  </div>
</section>

<section class="tables">
  {{ breakdown("Visits per day", "Date", s.visits_by_date) }}
  {{ breakdown("Traffic sources", "Source", s.referrers, label) }}
  {{ breakdown("Most visited pages", "Page", s.pages) }}
  {{ breakdown("Devices", "Type", s.devices) }}
</section>

<section class="actions">
  <a href="{{ url_for('traffic.export_csv', token=token) }}">Export data (CSV)</a>
  <form method="post" action="{{ url_for('traffic.clear') }}">
    <input type="hidden" name="token" value="{{ token }}"/>
    <button type="submit">Clear all data</button>
  </form>
</section>

</body>
</html>
"""


@bp.route("/stats")
def stats():
    token = request.args.get("token", "")
    require_token(token)

    summary = aggregate(get_store().read())
    if summary.is_empty:
        return render_template_string(EMPTY_HTML, style=REPORT_STYLE)

    spark_svg, spark_last = build_sparkline(summary.visits_by_date)
    return render_template_string(
        REPORT_HTML,
        style=REPORT_STYLE,
        s=summary,
        label=format_referrer,
        retention=traffic_config().retention_days,
        spark_svg=spark_svg,
        spark_last=spark_last,
        token=token,
    )


@bp.route("/stats.json")
def stats_json():
    require_token(request.args.get("token", ""))
    return jsonify(aggregate(get_store().read()).to_dict())


@bp.route("/stats.csv")
def export_csv():
    require_token(request.args.get("token", ""))

    events = get_store().read()
    if not events:
        return ("", 204)

    today = datetime.now(timezone.utc).date().isoformat()
    resp = Response(events_to_csv(events), mimetype="text/csv")
    resp.headers["Content-Disposition"] = f'attachment; filename="traffic_data_{today}.csv"'
    return resp


@bp.route("/stats/clear", methods=["POST"])
def clear():
    token = request.form.get("token", "")
    require_token(token)

    get_store().clear()
    logger.info("visit log %r cleared", traffic_config().storage_key)
    return redirect(url_for("traffic.stats", token=token))


# -----------------------------------------------------------------------------
# health
# -----------------------------------------------------------------------------
@bp.route("/healthz")
def healthz():
    return "ok", 200


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(config: TrafficConfig | None = None, clock=system_clock_ms) -> Flask:
    """
    Build the Flask app. Without an explicit config, settings come from the
    environment. Logging is left to the process entry point.
    """
    app = Flask(__name__)
    app.config["TRAFFIC"] = config or TrafficConfig.from_env()
    app.config["TRAFFIC_CLOCK"] = clock
    # keep the report's ordering in /stats.json
    app.json.sort_keys = False
    app.register_blueprint(bp)
    return app


def wsgi() -> Flask:
    """
    Process entry point: env config plus logging.
    Container runs: gunicorn 'site_traffic.app:wsgi()'
    """
    config = TrafficConfig.from_env()
    setup_logging(config.debug)
    return create_app(config)


if __name__ == "__main__":
    # Dev mode, container uses gunicorn
    app = wsgi()
    app.run(host="0.0.0.0", port=8000, debug=app.config["TRAFFIC"].debug)
