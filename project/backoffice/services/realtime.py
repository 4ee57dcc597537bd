# backoffice/services/realtime.py

from fastapi import WebSocket


class TicketRooms:
    """
    Комнаты WebSocket по тикетам: одна комната на ticket_id.
    Единственное разделяемое состояние процесса; живёт в app.state.rooms.
    """

    def __init__(self):
        self.rooms: dict[int, dict[WebSocket, str]] = {}

    def join(self, ticket_id: int, ws: WebSocket, role: str) -> None:
        self.rooms.setdefault(ticket_id, {})[ws] = role

    def leave(self, ticket_id: int, ws: WebSocket) -> None:
        room = self.rooms.get(ticket_id)
        if room is None:
            return
        room.pop(ws, None)
        if not room:
            del self.rooms[ticket_id]

    def drop(self, ws: WebSocket) -> None:
        for ticket_id in list(self.rooms):
            self.leave(ticket_id, ws)

    def members(self, ticket_id: int) -> int:
        return len(self.rooms.get(ticket_id, {}))

    async def broadcast(self, ticket_id: int, event: str, data: dict, staff_only: bool = False) -> int:
        """
        Рассылает событие всем в комнате. staff_only: внутренние заметки
        не уходят в сокеты клиентов. Возвращает число доставок.
        """
        delivered = 0
        for ws, role in list(self.rooms.get(ticket_id, {}).items()):
            if staff_only and role == "client":
                continue
            try:
                await ws.send_json({"event": event, "data": data})
                delivered += 1
            except Exception:
                # сокет закрыт на другой стороне
                self.drop(ws)
        return delivered
