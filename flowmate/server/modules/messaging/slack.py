"""
Slack Post Message Module - posts to a channel via chat.postMessage.
"""

from typing import Any, Dict, List

import requests

from flowmate.server.engine.module_interface import (
    ExecutableModule, ModuleExecutionError, ModuleInput, ModuleOutput
)

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackPostMessageModule(ExecutableModule):
    """
    Post a message to Slack with a bot token.

    The channel falls back to the credential's default_channel.
    """

    platform = "slack"
    side_effects = True

    @property
    def module_id(self) -> str:
        return "messaging.slack.post_message"

    @property
    def description(self) -> str:
        return "Send a message to a Slack channel"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="text", type="string", description="Message text (mrkdwn)"),
            ModuleInput(name="channel", type="string", required=False,
                        description="Channel id or name; defaults to the credential's channel"),
            ModuleInput(name="timeout", type="number", required=False, default=30),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="ok", type="boolean"),
            ModuleOutput(name="channel", type="string"),
            ModuleOutput(name="ts", type="string", description="Message timestamp id"),
        ]

    def get_mock_output(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return {"ok": True, "channel": inputs.get("channel") or "dry-run", "ts": "0000000000.000000"}

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        channel = self.get_input_value(inputs, "channel") or context.credentials.get("default_channel")
        if not channel:
            raise ModuleExecutionError(self.module_id, "No channel given and no default_channel configured")
        timeout = self.get_input_value(inputs, "timeout")
        http = context.services.get("http_session") or requests

        try:
            response = http.request(
                "POST",
                SLACK_POST_MESSAGE_URL,
                headers={"Authorization": f"Bearer {context.require_credential('bot_token')}"},
                json={"channel": channel, "text": inputs["text"]},
                timeout=timeout,
            )
        except requests.Timeout:
            raise ModuleExecutionError(self.module_id, f"Slack timed out after {timeout}s")
        except requests.RequestException as e:
            raise ModuleExecutionError(self.module_id, f"Slack request failed: {e}")

        try:
            data = response.json()
        except ValueError:
            raise ModuleExecutionError(self.module_id, f"Slack returned non-JSON ({response.status_code})")

        if not data.get("ok"):
            raise ModuleExecutionError(self.module_id, f"Slack error: {data.get('error', 'unknown')}")

        context.logger.info(f"[messaging.slack.post_message] Posted to {data.get('channel', channel)}")
        return {"ok": True, "channel": data.get("channel", channel), "ts": data.get("ts")}
