from flask import Blueprint, abort, current_app, redirect, render_template, request, url_for

from .datastore import fetch_all_or_raise
from .models import StoreUnavailable
from .progress import board_summary, format_km
from .tracker import FAILURE_NOTICE, Mode, SubmitOutcome, UpdateController


bp = Blueprint('main', __name__)

_SUBMIT_STATUS = {
    SubmitOutcome.CONFIRMED: 200,
    SubmitOutcome.INVALID: 422,
    SubmitOutcome.IGNORED: 409,
    SubmitOutcome.ROLLED_BACK: 502,
}


def _controller() -> UpdateController:
    return current_app.extensions['tracker']


def _trigger(mode: Mode, index: int):
    ctl = _controller()
    try:
        if mode is Mode.ADD:
            return ctl.on_add_triggered(index)
        return ctl.on_edit_triggered(index)
    except IndexError:
        abort(404)


def _board():
    return board_summary(_controller().participants(), current_app.config['GOAL_KM'])


def _form_payload():
    form = _controller().form()
    return form.to_dict() if form is not None else None


@bp.route('/health/db')
def health_db():
    """Scores table health check.

    Always returns HTTP 200 with a JSON body describing whether the table
    could be read and how many participants it holds.
    """
    try:
        people = fetch_all_or_raise()
    except StoreUnavailable as e:
        return {
            'connected': False,
            'status': 'error',
            'error': str(e),
        }
    return {
        'connected': True,
        'status': 'ok',
        'participants': len(people),
    }


@bp.route('/')
def index():
    ctl = _controller()
    form = ctl.form()
    selected = ctl.selected()
    return render_template(
        'index.html',
        title=current_app.config['TRACKER_TITLE'],
        board=_board(),
        form=form,
        selected=selected,
        selected_display=format_km(selected.distance) if selected else None,
    )


@bp.route('/participants/<int:index>/add', methods=['POST'])
def open_add(index):
    _trigger(Mode.ADD, index)
    return redirect(url_for('main.index'))


@bp.route('/participants/<int:index>/edit', methods=['POST'])
def open_edit(index):
    _trigger(Mode.EDIT, index)
    return redirect(url_for('main.index'))


@bp.route('/submit', methods=['POST'])
def submit():
    raw = request.form.get('amount', '')
    outcome = _controller().on_submit(raw)
    current_app.logger.debug("form submit outcome=%s", outcome.value)
    return redirect(url_for('main.index'))


@bp.route('/dismiss', methods=['POST'])
def dismiss():
    _controller().on_dismiss()
    return redirect(url_for('main.index'))


@bp.route('/api/participants')
def api_participants():
    return _board()


@bp.route('/api/form')
def api_form():
    return {'form': _form_payload()}


@bp.route('/api/participants/<int:index>/add', methods=['POST'])
def api_open_add(index):
    return {'form': _trigger(Mode.ADD, index).to_dict()}


@bp.route('/api/participants/<int:index>/edit', methods=['POST'])
def api_open_edit(index):
    return {'form': _trigger(Mode.EDIT, index).to_dict()}


@bp.route('/api/form/input', methods=['POST'])
def api_input():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get('text', ''), str):
        abort(400, description="Expected a JSON object with a string 'text'.")
    if _controller().form() is None:
        abort(409, description="No form is open.")
    text = _controller().on_input_changed(payload.get('text', ''))
    return {'text': text}


@bp.route('/api/form/submit', methods=['POST'])
def api_submit():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Expected a JSON object with an 'amount'.")
    raw = payload.get('amount')
    if raw is not None and not isinstance(raw, str):
        # numbers are accepted in JSON and go through the same parser
        raw = str(raw)
    result = _controller().submit(raw)
    outcome = result.outcome
    body = {
        'outcome': outcome.value,
        'form': _form_payload(),
        'participant': result.participant.to_dict() if result.participant else None,
    }
    if outcome is SubmitOutcome.ROLLED_BACK:
        body['notice'] = FAILURE_NOTICE
    return body, _SUBMIT_STATUS[outcome]


@bp.route('/api/form/dismiss', methods=['POST'])
def api_dismiss():
    _controller().on_dismiss()
    return {'form': None}
