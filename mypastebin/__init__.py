import secrets

from quart import Quart, jsonify, request, session

from .cleanup import BackgroundTasks
from .config import check_config, config
from .engine import build_engine
from .errors import Forbidden, PastebinError, ValidationError
from .log import get_logger
from .models import PasteForm

LOGGER = get_logger(__name__)
RECENT_PASTES = config["app"]["recent_pastes"]


async def default_bot_score(data):
    # Submissions reaching this API skip the browser challenge.
    return config["app"]["api_bot_score"]


def session_identity():
    """
    :returns: tuple (user ID, session ID), the user ID is ``None`` for
        anonymous users
    """
    if "session_id" not in session:
        session["session_id"] = secrets.token_urlsafe(16)
    return session.get("user_id"), session["session_id"]


def remember_paste(paste_id):
    pastes = session.get("pastes", []) + [paste_id]
    session["pastes"] = pastes[-RECENT_PASTES:]


def recent_pastes():
    return session.get("pastes", [])


async def read_payload():
    data = await request.get_json(silent=True)
    if data is None:
        data = await request.form
    return data


def create_app(
    test_config=None,
    engine=None,
    bot_score_provider=default_bot_score,
    identity_provider=session_identity,
):
    app = Quart(__name__)
    app.secret_key = config["app"]["secret_key"] or secrets.token_hex()

    if test_config is not None:
        app.config.from_mapping(test_config)

    if engine is None:
        check_config(config)
        engine = build_engine(config)
    background_tasks = BackgroundTasks(engine)

    def require_owner(paste):
        user_id, _ = identity_provider()
        if not paste.is_owned_by(user_id, recent_pastes()):
            raise Forbidden("You don't own this paste!")

    @app.before_serving
    async def startup():
        engine.database.open()
        background_tasks.start()

    @app.after_serving
    async def shutdown():
        # Last view counter flush and cache purge happen here.
        await background_tasks.stop()
        engine.database.close()

    @app.errorhandler(PastebinError)
    async def handle_error(err):
        if err.status >= 500:
            LOGGER.error(
                f"{type(err).__name__} on {request.method} {request.path}: "
                f"{err} ({err.error!r})"
            )
        body = {"success": False, "error": err.user_message}
        return jsonify(body), err.status

    @app.route("/pastebin/", methods=("POST",))
    async def create_paste():
        data = await read_payload()
        form = PasteForm(
            content=data.get("content", ""),
            title=data.get("title"),
            tags=data.get("tags"),
            format=data.get("format", "text"),
            destination=data.get("destination", "datastore"),
        )
        score = await bot_score_provider(data)
        user_id, session_id = identity_provider()
        paste_id = await engine.create(
            form,
            score,
            user_id=user_id,
            session_id=session_id,
            alt_token=session.get("drive_token"),
        )
        remember_paste(paste_id)
        return (
            jsonify(
                {
                    "success": True,
                    "paste_id": paste_id,
                    "url": f"{request.host_url}pastebin/{paste_id}",
                }
            ),
            201,
        )

    @app.route("/pastebin/<paste_id>", methods=("GET",))
    async def get_paste(paste_id):
        paste = await engine.get(paste_id)
        engine.record_view(paste)
        user_id, _ = identity_provider()
        data = paste.to_dict(engine.s3_bucket_url)
        data["owned"] = paste.is_owned_by(user_id, recent_pastes())
        return jsonify(data)

    @app.route("/pastebinc/<paste_id>/content")
    async def get_paste_content(paste_id):
        paste = await engine.get(paste_id)
        content = await engine.get_content(paste)
        headers = {
            "Content-Type": f"{paste.format.content_type}; charset=utf-8",
            "Cache-Control": "public, max-age=15552000",
        }
        return content, 200, headers

    @app.route("/pastebin/<paste_id>", methods=("PATCH",))
    async def edit_paste(paste_id):
        paste = await engine.get(paste_id)
        require_owner(paste)
        data = await read_payload()
        await engine.edit(paste, data.get("title"), data.get("tags"))
        return jsonify(paste.to_dict(engine.s3_bucket_url))

    @app.route("/pastebin/<paste_id>", methods=("DELETE",))
    async def delete_paste(paste_id):
        paste = await engine.get(paste_id)
        require_owner(paste)
        await engine.delete(paste)
        return jsonify({"success": True, "paste_id": paste.paste_id})

    @app.route("/pastebin/search/")
    async def search():
        tags = request.args.get("tags")
        if tags is None:
            raise ValidationError("No tags parameter found")
        page = request.args.get("page", 1, type=int)
        result = await engine.search(tags, page)
        return jsonify(result.to_dict())

    @app.route("/pastebin/mine")
    async def user_pastes():
        user_id, _ = identity_provider()
        if user_id is None:
            raise Forbidden("Please log in to see your saved pastes")
        pastes = await engine.pastes_by_owner(user_id)
        return jsonify({"pastes": [p.to_dict() for p in pastes]})

    return app
