# backoffice/routes/realtime.py

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from backoffice.models.ticket import Ticket
from backoffice.routes.auth import session_id_from_cookie
from backoffice.services.policy import is_staff
from backoffice.services.users import resolve_session

router = APIRouter()

UNAUTHORIZED_CLOSE_CODE = 4401


@router.websocket("/ws")
async def ticket_socket(websocket: WebSocket):
    """
    Живые сообщения тикетов.
    Кадры клиента: {"action": "join-ticket" | "leave-ticket", "ticket_id": n}.
    """
    app = websocket.app
    rooms = app.state.rooms
    log = app.state.log

    session_id = session_id_from_cookie(websocket.cookies)
    async with app.state.db.session() as db:
        user = await resolve_session(db, session_id) if session_id else None

    await websocket.accept()
    if user is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    await log.log_info("realtime", "Сокет подключён", {"user": user.id})
    try:
        while True:
            try:
                frame = json.loads(await websocket.receive_text())
            except ValueError:
                await websocket.send_json({"event": "error", "data": {"error": "bad_frame"}})
                continue

            action = frame.get("action") if isinstance(frame, dict) else None
            ticket_id = frame.get("ticket_id") if isinstance(frame, dict) else None
            if not isinstance(ticket_id, int):
                await websocket.send_json({"event": "error", "data": {"error": "bad_frame"}})
                continue

            if action == "join-ticket":
                async with app.state.db.session() as db:
                    ticket = await db.get(Ticket, ticket_id)
                if ticket is None or (not is_staff(user.role) and ticket.client_id != user.id):
                    await websocket.send_json({"event": "error", "data": {"error": "forbidden", "ticket_id": ticket_id}})
                    continue
                rooms.join(ticket_id, websocket, user.role)
                await websocket.send_json({"event": "joined", "data": {"ticket_id": ticket_id}})
            elif action == "leave-ticket":
                rooms.leave(ticket_id, websocket)
                await websocket.send_json({"event": "left", "data": {"ticket_id": ticket_id}})
            else:
                await websocket.send_json({"event": "error", "data": {"error": "bad_action"}})
    except WebSocketDisconnect:
        await log.log_info("realtime", "Сокет отключён", {"user": user.id})
    finally:
        rooms.drop(websocket)
