"""NiceGUI chat interface driven by ChatClient."""

import os

import httpx
from nicegui import app, events, ui

from docchat.client.chat_client import ChatClient
from docchat.models.conversation import ConversationState, Message, format_citations

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

# One connection pool for every tab, closed with the app.
_http = httpx.AsyncClient(timeout=120.0)
app.on_shutdown(_http.aclose)

PAGE_STYLE = """
<style>
    body { background: #eef2f7; font-family: system-ui, sans-serif; }
    .chat-shell { background: #ffffff; border: 1px solid #d8dee9; border-radius: 10px; }
    .chat-title { background: #1e3a8a; border-radius: 10px 10px 0 0; }
    .bubble { padding: 0.6rem 0.9rem; border-radius: 14px; line-height: 1.45; }
    .bubble-user { background: #1e3a8a; color: #ffffff; border-bottom-right-radius: 3px; }
    .bubble-assistant { background: #f1f5f9; color: #0f172a; border-bottom-left-radius: 3px; }
    .sources { border-left: 3px solid #0f766e; }
</style>
"""


def _time_text(msg: Message) -> str:
    return msg.timestamp.strftime("%H:%M") if msg.timestamp else ""


@ui.page("/")
def chat_page() -> None:
    """Chat page bound to one ChatClient per browser tab."""
    ui.add_head_html(PAGE_STYLE)

    transcript: ui.column
    prompt: ui.textarea
    send_button: ui.button
    stop_button: ui.button
    uploader: ui.upload

    def show_message(msg: Message) -> None:
        mine = msg.role == "user"
        with ui.column().classes("max-w-[80%] gap-0 " + ("self-end items-end" if mine else "self-start")):
            with ui.element("div").classes("bubble " + ("bubble-user" if mine else "bubble-assistant")):
                if mine:
                    ui.label(msg.content).classes("whitespace-pre-wrap")
                elif msg.content:
                    ui.markdown(msg.content)
                else:
                    ui.spinner("dots", size="sm")
            ui.label(_time_text(msg)).classes("text-[10px] text-slate-400")

    def show_sources(msg: Message) -> None:
        if msg.role != "assistant" or not msg.sources:
            return
        with ui.column().classes("sources pl-3 gap-0"):
            ui.label("Sources").classes("text-xs font-semibold text-slate-500")
            ui.label(format_citations(msg.sources)).classes("text-xs text-slate-500 whitespace-pre-line")

    def render(state: ConversationState) -> None:
        transcript.clear()
        with transcript:
            if state.messages:
                for msg in state.messages:
                    show_message(msg)
                # Sources belong to the latest answer only.
                show_sources(state.messages[-1])
            else:
                ui.label("Upload PDFs, then ask about them.").classes(
                    "self-center mt-24 text-slate-400"
                )
        send_button.set_enabled(not state.is_streaming)
        stop_button.set_visibility(state.is_streaming)

    client = ChatClient(API_BASE_URL, http_client=_http, on_update=render)
    ui.context.client.on_disconnect(client.aclose)

    async def send() -> None:
        text = prompt.value.strip()
        if not text:
            return
        prompt.value = ""
        try:
            await client.submit(text)
        except httpx.HTTPError as e:
            ui.notify(f"Unable to reach the chat service: {e}", type="negative")
            return
        if client.last_error:
            ui.notify(client.last_error, type="negative")

    def stop() -> None:
        client.cancel()

    async def upload(event: events.MultiUploadEventArguments) -> None:
        files = [(name, content.read()) for name, content in zip(event.names, event.contents)]
        uploader.reset()
        try:
            body = await client.ingest(files)
        except httpx.HTTPError as e:
            ui.notify(f"Upload failed: {e}", type="negative")
            return
        if body.get("success"):
            ui.notify(f"Indexed {', '.join(body['data']['filesProcessed'])}", type="positive")
            for warning in body["data"].get("warnings", []):
                ui.notify(warning, type="warning")
        else:
            ui.notify(body.get("error", "Upload failed"), type="negative")

    with ui.column().classes("chat-shell w-full max-w-3xl mx-auto my-6 gap-0").style(
        "height: calc(100vh - 3rem)"
    ):
        with ui.row().classes("chat-title w-full items-center px-4 py-3"):
            ui.label("Document Chat").classes("text-white text-lg font-medium")
            ui.space()
            ui.button(icon="restart_alt", on_click=client.reset).props("flat round color=white")

        with ui.scroll_area().classes("flex-grow w-full"):
            transcript = ui.column().classes("w-full gap-3 p-4")

        uploader = ui.upload(
            label="Add PDFs", multiple=True, auto_upload=True, on_multi_upload=upload
        ).props("accept=.pdf batch flat bordered").classes("w-full")

        with ui.row().classes("w-full items-end gap-2 p-3 border-t"):
            prompt = (
                ui.textarea(placeholder="Ask about your documents")
                .props("autogrow outlined dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", send)
            )
            stop_button = ui.button(icon="stop", on_click=stop).props("round flat color=negative")
            send_button = ui.button(icon="send", on_click=send).props("round unelevated")

    render(client.state)
