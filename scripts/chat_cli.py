#!/usr/bin/env python3
"""Interactive chat CLI for an agent served with agent_runtime.main.serve."""

import json
import sys
from collections.abc import Iterator

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


def iter_sse(lines: Iterator[str]) -> Iterator[tuple[str, dict]]:
    """Parse server-sent event lines into (event, data) pairs."""
    event = "message"
    data_lines: list[str] = []

    for line in lines:
        if line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:") :].strip())
        elif line == "" and data_lines:
            yield event, json.loads("\n".join(data_lines))
            event = "message"
            data_lines = []

    if data_lines:
        yield event, json.loads("\n".join(data_lines))


class ChatCLI:
    """Interactive streaming chat against the /chat endpoint."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.conversation_id: str | None = None
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Agent Runtime - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the agent.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to {self.base_url}. Is the agent being served?[/red]")
            return

        self.console.print("[green]Connected[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.conversation_id = None
                    self.console.print("[yellow]Started a new conversation[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                answer = self._stream_message(user_input)
                if answer is not None:
                    self._display_response(answer)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _stream_message(self, message: str) -> str | None:
        """Send a message and print tool activity while the answer streams in."""
        payload = {"message": message, "stream": True}
        if self.conversation_id:
            payload["conversation_id"] = self.conversation_id

        answer = ""
        try:
            with self.client.stream("POST", f"{self.base_url}/chat", json=payload) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
                    return None

                for event, data in iter_sse(response.iter_lines()):
                    if event == "start":
                        self.conversation_id = data["conversation_id"]
                    elif event == "text-delta":
                        answer += data["text_delta"]
                    elif event == "tool-call-start":
                        self.console.print(f"[dim]-> {data['tool_name']}({json.dumps(data['tool_args'])})[/dim]")
                    elif event == "tool-result":
                        self.console.print(f"[dim]<- {data['tool_name']}: {str(data['tool_result'])[:80]}[/dim]")
                    elif event == "error":
                        self.console.print(f"[red]Error: {data.get('error')}[/red]")

        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return None

        return answer

    def _display_response(self, answer: str) -> None:
        """Display the agent's answer."""
        self.console.print(
            Panel(
                Markdown(answer or "_(no text)_"),
                title="[bold green]Agent[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Start a new conversation
• /quit or /exit - Exit the chat

[bold]Tips:[/bold]
• Tool calls and their results are shown dimmed as they happen
• The conversation id is kept across messages until /clear
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
