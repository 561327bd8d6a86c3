from pathlib import Path
import sys
import unittest
from unittest.mock import AsyncMock, patch

SERVER_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(SERVER_DIR))

import engine_bridge
from settings import Settings


class ValidateArgsTests(unittest.TestCase):
    def test_accepts_allowed_command(self):
        self.assertEqual(
            engine_bridge._validate_args("banner", ["hi", "--font", "big"]),
            ["hi", "--font", "big"],
        )

    def test_rejects_unknown_command(self):
        with self.assertRaises(ValueError):
            engine_bridge._validate_args("config", [])

    def test_rejects_control_characters(self):
        with self.assertRaises(ValueError):
            engine_bridge._validate_args("say", ["hi\x1b[2J"])

    def test_rejects_oversized_argument(self):
        with self.assertRaises(ValueError):
            engine_bridge._validate_args("say", ["x" * 513])

    def test_rejects_file_writing_flags(self):
        for args in (
            ["x", "-o", "/root/.bashrc"],
            ["x", "-o/tmp/out.txt"],
            ["x", "-qo", "out.txt"],
            ["x", "--output", "out.png"],
            ["x", "--output=out.png"],
            ["--output-dir", "/tmp"],
            ["x", "--watch"],
            ["x", "--copy"],
        ):
            with self.subTest(args=args):
                with self.assertRaises(ValueError):
                    engine_bridge._validate_args("banner", args)

    def test_allows_render_flags(self):
        args = ["hi", "--font", "big", "-s", "neon", "--gradient=fire"]
        self.assertEqual(engine_bridge._validate_args("banner", args), args)

    def test_flags_after_separator_are_text(self):
        self.assertEqual(engine_bridge._validate_args("say", ["--", "-o"]), ["--", "-o"])

    def test_rejects_too_many_arguments(self):
        with self.assertRaises(ValueError):
            engine_bridge._validate_args("say", ["x"] * 17)


class RenderTests(unittest.IsolatedAsyncioTestCase):
    async def test_render_passes_command_and_args(self):
        with patch.object(engine_bridge, "_run", AsyncMock(return_value="\x1b[1mhi\x1b[0m")) as run_mock:
            out = await engine_bridge.render("banner", ["hi", "--gradient", "neon"])
        self.assertEqual(out, "\x1b[1mhi\x1b[0m")
        run_mock.assert_awaited_once_with("banner", "hi", "--gradient", "neon")

    async def test_render_validates_before_running(self):
        with patch.object(engine_bridge, "_run", AsyncMock(return_value="")) as run_mock:
            with self.assertRaises(ValueError):
                await engine_bridge.render("rm", ["-rf"])
        run_mock.assert_not_awaited()

    async def test_has_engine_false_on_failure(self):
        with patch.object(engine_bridge, "_run", AsyncMock(side_effect=RuntimeError("boom"))):
            self.assertFalse(await engine_bridge.has_engine())


class RunTests(unittest.IsolatedAsyncioTestCase):
    def _settings(self, **kwargs):
        return patch.object(engine_bridge, "get_settings", return_value=Settings(**kwargs))

    async def test_missing_binary_raises_runtime_error(self):
        with self._settings(engine_bin="/nonexistent/art-engine"):
            with self.assertRaises(RuntimeError):
                await engine_bridge._run("--version")

    async def test_returns_stdout(self):
        with self._settings(engine_bin=sys.executable):
            out = await engine_bridge._run("-c", "print('art')")
        self.assertEqual(out.strip(), "art")

    async def test_nonzero_exit_raises(self):
        with self._settings(engine_bin=sys.executable):
            with self.assertRaises(RuntimeError):
                await engine_bridge._run("-c", "import sys; sys.exit(3)")

    async def test_undecodable_stderr_still_raises_runtime_error(self):
        script = "import sys; sys.stderr.buffer.write(b'\\xff bad'); sys.exit(1)"
        with self._settings(engine_bin=sys.executable):
            with self.assertRaises(RuntimeError) as ctx:
                await engine_bridge._run("-c", script)
        self.assertIn("bad", str(ctx.exception))

    async def test_timeout_raises(self):
        with self._settings(engine_bin=sys.executable, engine_timeout=0.2):
            with self.assertRaises(RuntimeError):
                await engine_bridge._run("-c", "import time; time.sleep(5)")


if __name__ == "__main__":
    unittest.main()
