# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Tests for Registry operations against a scripted reg.exe"""

import asyncio

import pytest

from regshell.core.exceptions import ProcessUncleanExitError, ValidationError
from regshell.core.items import RegistryItem
from regshell.core.registry import Registry

LONG_NAMES = {
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKCU": "HKEY_CURRENT_USER",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKU": "HKEY_USERS",
    "HKCC": "HKEY_CURRENT_CONFIG",
}

NOT_FOUND = "ERROR: The system was unable to find the specified registry key or value."


class SimulatedRegistry:
    """In-memory registry answering reg.exe argument lists the way reg.exe does"""

    def __init__(self):
        self.keys = {}

    @staticmethod
    def _long(path):
        hive, _, rest = path.partition("\\")
        return LONG_NAMES[hive] + ("\\" + rest if rest else "")

    @staticmethod
    def _name(rest):
        if "/v" in rest:
            return rest[rest.index("/v") + 1]
        return ""

    def _children(self, path):
        prefix = path + "\\"
        return sorted(
            k for k in self.keys if k.startswith(prefix) and "\\" not in k[len(prefix):]
        )

    def __call__(self, args):
        verb, path, rest = args[0], args[1].strip('"'), args[2:]

        if verb == "ADD":
            parts = path.split("\\")
            for depth in range(2, len(parts)):
                self.keys.setdefault("\\".join(parts[:depth]), {})
            values = self.keys.setdefault(path, {})
            if "/t" in rest:
                value_type = rest[rest.index("/t") + 1]
                data = rest[rest.index("/d") + 1]
                values[self._name(rest)] = (value_type, data)
            return 0, "The operation completed successfully.\r\n", ""

        if path not in self.keys:
            return 1, "", NOT_FOUND

        values = self.keys[path]
        if verb == "QUERY":
            lines = ["", self._long(path)]
            if "/v" in rest or "/ve" in rest:
                name = self._name(rest)
                if name not in values:
                    return 1, "", NOT_FOUND
                selected = {name: values[name]}
            else:
                selected = values
            for name, (value_type, data) in selected.items():
                lines.append(f"    {name or '(Default)'}    {value_type}    {data}")
            if selected is values:
                lines.append("")
                lines.extend(self._long(child) for child in self._children(path))
            return 0, "\r\n".join(lines) + "\r\n", ""

        if verb == "DELETE":
            if "/va" in rest:
                values.clear()
            elif "/v" in rest or "/ve" in rest:
                name = self._name(rest)
                if name not in values:
                    return 1, "", NOT_FOUND
                del values[name]
            else:
                for key in [k for k in self.keys if k == path or k.startswith(path + "\\")]:
                    del self.keys[key]
            return 0, "The operation completed successfully.\r\n", ""

        return 1, "", "ERROR: Invalid syntax."


@pytest.fixture
def simulated(fake_reg):
    registry = SimulatedRegistry()
    fake_reg.handler = registry
    return registry


@pytest.fixture
def app():
    return Registry(hive=Registry.HKCU, key="\\Software\\MyApp")


def _noop(err, result):
    pass


class TestCallbackApi:
    @pytest.mark.asyncio
    async def test_operations_return_self(self, fake_reg, app):
        assert app.values(_noop) is app
        assert app.keys(_noop) is app
        assert app.get("x", _noop) is app
        assert app.set("x", Registry.REG_SZ, "y", _noop) is app
        assert app.remove("x", _noop) is app
        assert app.clear(_noop) is app
        assert app.destroy(_noop) is app
        assert app.create(_noop) is app
        assert app.key_exists(_noop) is app
        assert app.value_exists("x", _noop) is app

        await asyncio.sleep(0.05)
        assert fake_reg.spawned == 10

    @pytest.mark.asyncio
    async def test_values(self, fake_reg, app, recorder):
        fake_reg.respond(
            0,
            "\r\nHKEY_CURRENT_USER\\Software\\MyApp\r\n"
            "    Version    REG_SZ    1.2.3\r\n"
            "    Count    REG_DWORD    0x1\r\n",
        )

        app.values(recorder)
        err, items = await recorder.wait()

        assert err is None
        assert items == [
            RegistryItem("", "HKCU", "\\Software\\MyApp", "Version", "REG_SZ", "1.2.3"),
            RegistryItem("", "HKCU", "\\Software\\MyApp", "Count", "REG_DWORD", "0x1"),
        ]
        assert fake_reg.calls == [["REG", "QUERY", "HKCU\\Software\\MyApp"]]

    @pytest.mark.asyncio
    async def test_keys(self, fake_reg, app, recorder):
        fake_reg.respond(
            0,
            "\r\nHKEY_CURRENT_USER\\Software\\MyApp\r\n"
            "HKEY_CURRENT_USER\\Software\\MyApp\\Plugins\r\n",
        )

        app.keys(recorder)
        err, keys = await recorder.wait()

        assert err is None
        assert keys == [Registry(hive="HKCU", key="\\Software\\MyApp\\Plugins")]

    @pytest.mark.asyncio
    async def test_get(self, fake_reg, app, recorder):
        fake_reg.respond(0, "HKEY_CURRENT_USER\\Software\\MyApp\r\nVersion    REG_SZ    1.2.3\r\n")

        app.get("Version", recorder)
        err, item = await recorder.wait()

        assert err is None
        assert item.value == "1.2.3"
        assert fake_reg.calls[0][1:] == ["QUERY", "HKCU\\Software\\MyApp", "/v", "Version"]

    @pytest.mark.asyncio
    async def test_get_unparseable_output(self, fake_reg, app, recorder):
        fake_reg.respond(0, "")

        app.get("Version", recorder)

        assert await recorder.wait() == (None, None)

    @pytest.mark.asyncio
    async def test_get_missing_value_is_error(self, fake_reg, app, recorder):
        fake_reg.respond(1, "", NOT_FOUND)

        app.get("Missing", recorder)
        err, item = await recorder.wait()

        assert isinstance(err, ProcessUncleanExitError)
        assert err.code == 1
        assert item is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        [
            lambda reg, cb: reg.set("x", Registry.REG_SZ, "y", cb),
            lambda reg, cb: reg.remove("x", cb),
            lambda reg, cb: reg.clear(cb),
            lambda reg, cb: reg.destroy(cb),
            lambda reg, cb: reg.create(cb),
            lambda reg, cb: reg.values(cb),
            lambda reg, cb: reg.keys(cb),
        ],
    )
    async def test_unclean_exit_reported(self, fake_reg, app, recorder, operation):
        fake_reg.respond(5, "", "ERROR: Access is denied.")

        operation(app, recorder)
        err, result = await recorder.wait()

        assert isinstance(err, ProcessUncleanExitError)
        assert err.code == 5
        assert "Access is denied." in str(err)
        assert result is None
        assert len(recorder.calls) == 1

    @pytest.mark.asyncio
    async def test_value_exists_true(self, fake_reg, app, recorder):
        fake_reg.respond(0, "HKEY_CURRENT_USER\\Software\\MyApp\r\nx    REG_SZ    y\r\n")

        app.value_exists("x", recorder)

        assert await recorder.wait() == (None, True)

    @pytest.mark.asyncio
    async def test_value_exists_false_on_exit_1(self, fake_reg, app, recorder):
        fake_reg.respond(1, "", NOT_FOUND)

        app.value_exists("x", recorder)

        assert await recorder.wait() == (None, False)

    @pytest.mark.asyncio
    async def test_key_exists_other_failure_is_error(self, fake_reg, app, recorder):
        fake_reg.respond(5, "", "ERROR: Access is denied.")

        app.key_exists(recorder)
        err, result = await recorder.wait()

        assert err.code == 5
        assert result is None

    @pytest.mark.asyncio
    async def test_spawn_error_passed_unchanged(self, fake_reg, app, recorder):
        error = FileNotFoundError(2, "No such file or directory")
        fake_reg.spawn_error = error

        app.key_exists(recorder)
        err, result = await recorder.wait()

        assert err is error
        assert result is None

    @pytest.mark.asyncio
    async def test_invalid_type_rejected_before_spawn(self, fake_reg, app, recorder):
        with pytest.raises(ValidationError):
            app.set("x", "REG_TEXT", "y", recorder)

        assert fake_reg.spawned == 0
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_missing_callback(self, fake_reg, app):
        with pytest.raises(TypeError, match="must specify a callback"):
            app.values(None)
        with pytest.raises(TypeError):
            app.set("x", Registry.REG_SZ, "y", "not callable")

        assert fake_reg.spawned == 0

    @pytest.mark.asyncio
    async def test_erase_is_deprecated_clear(self, fake_reg, app, recorder):
        with pytest.warns(DeprecationWarning):
            result = app.erase(recorder)

        assert result is app
        await recorder.wait()
        assert fake_reg.calls[0][1:] == ["DELETE", "HKCU\\Software\\MyApp", "/f", "/va"]

    @pytest.mark.asyncio
    async def test_arch_switch_passed(self, fake_reg, recorder):
        Registry(hive="HKLM", key="\\SOFTWARE", arch="x64").key_exists(recorder)
        await recorder.wait()

        assert fake_reg.calls[0][-1] == "/reg:64"

    @pytest.mark.asyncio
    async def test_utf8_mode_uses_shell(self, fake_reg, recorder):
        Registry(hive="HKCU", key="\\Software", utf8=True).create(recorder)
        await recorder.wait()

        assert fake_reg.calls == ['REG ADD HKCU\\Software /f']

    def test_callback_api_needs_running_loop(self, fake_reg, app):
        with pytest.raises(RuntimeError):
            app.values(_noop)

        assert fake_reg.spawned == 0


class TestAwaitableApi:
    @pytest.mark.asyncio
    async def test_set_then_get(self, simulated, app):
        await app.acreate()
        await app.aset("Version", Registry.REG_SZ, "2.0")
        await app.aset(Registry.DEFAULT_VALUE, Registry.REG_SZ, "main")

        item = await app.aget("Version")
        default = await app.aget(Registry.DEFAULT_VALUE)

        assert (item.name, item.type, item.value) == ("Version", "REG_SZ", "2.0")
        assert (default.name, default.value) == ("(Default)", "main")

    @pytest.mark.asyncio
    async def test_set_dword_value_stringified(self, simulated, app):
        await app.aset("Count", Registry.REG_DWORD, 42)
        assert (await app.aget("Count")).value == "42"

    @pytest.mark.asyncio
    async def test_values_and_keys(self, simulated, app):
        await app.aset("A", Registry.REG_SZ, "1")
        await app.aset("B", Registry.REG_SZ, "2")
        await app.with_key("\\Software\\MyApp\\Child").acreate()

        items = await app.avalues()
        keys = await app.akeys()

        assert [(i.name, i.value) for i in items] == [("A", "1"), ("B", "2")]
        assert [k.key for k in keys] == ["\\Software\\MyApp\\Child"]

    @pytest.mark.asyncio
    async def test_remove_and_exists(self, simulated, app):
        await app.aset("A", Registry.REG_SZ, "1")
        assert await app.avalue_exists("A") is True

        await app.aremove("A")

        assert await app.avalue_exists("A") is False
        assert await app.akey_exists() is True

    @pytest.mark.asyncio
    async def test_clear_keeps_subkeys(self, simulated, app):
        await app.aset("A", Registry.REG_SZ, "1")
        await app.with_key("\\Software\\MyApp\\Child").acreate()

        await app.aclear()

        assert await app.avalues() == []
        assert len(await app.akeys()) == 1

    @pytest.mark.asyncio
    async def test_destroy(self, simulated, app):
        await app.with_key("\\Software\\MyApp\\Child").acreate()

        await app.adestroy()

        assert await app.akey_exists() is False
        assert await app.with_key("\\Software\\MyApp\\Child").akey_exists() is False

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, simulated, app):
        with pytest.raises(ProcessUncleanExitError) as exc_info:
            await app.avalues()

        assert exc_info.value.code == 1
        assert str(exc_info.value).startswith("QUERY command exited with code 1:")

    @pytest.mark.asyncio
    async def test_invalid_type(self, fake_reg, app):
        with pytest.raises(ValidationError):
            await app.aset("x", "DWORD", 1)

        assert fake_reg.spawned == 0

    @pytest.mark.asyncio
    async def test_spawn_error_raised(self, fake_reg, app):
        fake_reg.spawn_error = PermissionError(13, "Access is denied")

        with pytest.raises(PermissionError):
            await app.acreate()
