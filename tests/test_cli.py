from __future__ import annotations

import contextlib
import io
import os
import unittest
from unittest import mock

import httpx

from jobtrigger.cli import build_parser, main
from jobtrigger.deadline import Deadline

INPUTS = {
    "INPUT_URL": "https://ci",
    "INPUT_USER_NAME": "alice",
    "INPUT_API_TOKEN": "token",
    "INPUT_JOB_NAME": "deploy",
    "GITHUB_ACTIONS": "true",
}


class TrackedDeadline(Deadline):
    created: list[Deadline] = []

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        TrackedDeadline.created.append(self)


def _jenkins(queue_documents: list[dict], build_documents: list[dict]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/job/deploy/buildWithParameters":
            return httpx.Response(201, headers={"Location": "https://ci/queue/5/"})
        if request.url.path == "/queue/5/api/json":
            return httpx.Response(200, json=queue_documents.pop(0) if len(queue_documents) > 1 else queue_documents[0])
        if request.url.path == "/build/5/api/json":
            return httpx.Response(200, json=build_documents.pop(0))
        return httpx.Response(404)

    return httpx.MockTransport(handler)


class CliTest(unittest.TestCase):
    def setUp(self) -> None:
        TrackedDeadline.created = []
        patcher = mock.patch("jobtrigger.trigger.Deadline", TrackedDeadline)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, argv: list[str], transport: httpx.MockTransport) -> tuple[int, str]:
        stdout = io.StringIO()
        with mock.patch.dict(os.environ, INPUTS, clear=True), contextlib.redirect_stdout(stdout):
            code = main(argv, http_transport=transport)
        return code, stdout.getvalue()

    def test_wait_and_insecure_flags(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["--job-name", "deploy", "--wait", "--insecure", "--timeout", "90"])
        self.assertEqual(args.job_name, "deploy")
        self.assertTrue(args.wait)
        self.assertTrue(args.insecure)
        self.assertEqual(args.timeout, 90)
        self.assertFalse(parser.parse_args(["--no-wait"]).wait)
        self.assertIsNone(parser.parse_args([]).wait)

    def test_missing_inputs_exit_with_config_error(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(main(["--job-name", "deploy"]), 2)

    def test_trigger_only_run_exits_zero(self) -> None:
        code, stdout = self._run(["--no-wait"], _jenkins([], []))
        self.assertEqual(code, 0)
        self.assertEqual(stdout, "")
        self.assertFalse(TrackedDeadline.created[0].armed)

    def test_successful_wait_exits_zero(self) -> None:
        transport = _jenkins(
            [{"executable": {"url": "https://ci/build/5/"}}],
            [{"result": "SUCCESS", "fullDisplayName": "deploy #5"}] * 3,
        )
        code, stdout = self._run(["--wait", "--poll-interval", "0"], transport)
        self.assertEqual(code, 0)
        self.assertEqual(stdout, "")
        self.assertFalse(TrackedDeadline.created[0].armed)

    def test_failed_build_exits_one_with_display_name(self) -> None:
        transport = _jenkins(
            [{"executable": {"url": "https://ci/build/5/"}}],
            [{"result": "FAILURE", "fullDisplayName": "deploy #5"}],
        )
        code, stdout = self._run(["--wait", "--poll-interval", "0"], transport)
        self.assertEqual(code, 1)
        self.assertTrue(stdout.startswith("::error::"))
        self.assertIn("deploy #5", stdout)
        self.assertFalse(TrackedDeadline.created[0].armed)

    def test_timeout_exits_one_and_releases_deadline(self) -> None:
        transport = _jenkins([{"cancelled": False, "why": "waiting"}], [])
        code, stdout = self._run(["--wait", "--timeout", "1", "--poll-interval", "30"], transport)
        self.assertEqual(code, 1)
        self.assertIn("Job Timeout", stdout)
        self.assertEqual(len(TrackedDeadline.created), 1)
        self.assertFalse(TrackedDeadline.created[0].armed)
        self.assertTrue(TrackedDeadline.created[0].expired)


if __name__ == "__main__":
    unittest.main()
