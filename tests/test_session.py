"""Tests for the glossary-scoped translation workflow."""

import asyncio
from dataclasses import replace

import httpx
import pytest

from glossary_translator.api.client import DeepLClient
from glossary_translator.api.exceptions import CleanupError, RemoteError, TransportError
from glossary_translator.glossary import parse_glossary_csv
from glossary_translator.session import Step, TranslationSession, run_session

from conftest import GLOSSARY_ID, form_of

CREATE = ("POST", "/v2/glossaries")
TRANSLATE = ("POST", "/v2/translate")
DELETE = ("DELETE", f"/v2/glossaries/{GLOSSARY_ID}")


async def run(fake_deepl, session_config, text="こんにちは、世界！", csv_text="", **kwargs):
    async with DeepLClient(session_config.credentials, transport=fake_deepl.transport) as client:
        session = TranslationSession(client, session_config)
        return await session.run(text, parse_glossary_csv(csv_text), **kwargs)


class TestRoundTrip:
    """Happy path: create, translate, delete, back-translate."""

    @pytest.mark.asyncio
    async def test_round_trip_with_empty_glossary(self, fake_deepl, session_config):
        result = await run(fake_deepl, session_config)

        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE, TRANSLATE]
        assert result.glossary.glossary_id == GLOSSARY_ID
        assert result.glossary.entry_count == 0
        assert result.translation.text == "Hello, world!"
        assert result.back_translation.text == "こんにちは、世界！"
        assert result.cleanup_error is None
        assert result.back_translation_error is None

    @pytest.mark.asyncio
    async def test_glossary_request_fields(self, fake_deepl, session_config):
        await run(fake_deepl, session_config, csv_text="翻訳,translation\n用語集,glossary\n")

        [create_form] = fake_deepl.forms(*CREATE)
        assert create_form == {
            "name": "Tmp",
            "source_lang": "JA",
            "target_lang": "EN",
            "entries_format": "csv",
            "entries": "翻訳,translation\n用語集,glossary\n",
        }

    @pytest.mark.asyncio
    async def test_glossary_id_passed_unchanged_to_translate_and_delete(self, fake_deepl, session_config):
        await run(fake_deepl, session_config, back_translate=False)

        primary = fake_deepl.forms(*TRANSLATE)[0]
        assert primary["glossary_id"] == GLOSSARY_ID
        assert primary["text"] == "こんにちは、世界！"
        assert (primary["source_lang"], primary["target_lang"]) == ("JA", "EN")
        assert fake_deepl.calls.count(DELETE) == 1

    @pytest.mark.asyncio
    async def test_back_translation_uses_primary_output_without_glossary(self, fake_deepl, session_config):
        await run(fake_deepl, session_config, back_translate=True)

        back = fake_deepl.forms(*TRANSLATE)[1]
        assert back == {"text": "Hello, world!", "source_lang": "EN", "target_lang": "JA"}

    @pytest.mark.asyncio
    async def test_back_translation_follows_config_by_default(self, fake_deepl, session_config):
        result = await run(fake_deepl, replace(session_config, back_translate=False))

        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]
        assert result.back_translation is None

    @pytest.mark.asyncio
    async def test_regional_target_uses_base_codes_for_glossary_and_back_translation(self, fake_deepl, session_config):
        await run(fake_deepl, replace(session_config, target_lang="EN-GB"))

        [create_form] = fake_deepl.forms(*CREATE)
        primary, back = fake_deepl.forms(*TRANSLATE)
        assert create_form["target_lang"] == "EN"
        assert primary["target_lang"] == "EN-GB"
        assert (back["source_lang"], back["target_lang"]) == ("EN", "JA")

    @pytest.mark.asyncio
    async def test_unique_glossary_name_per_session(self, fake_deepl, session_config):
        config = replace(session_config, unique_glossary_name=True)
        await run(fake_deepl, config, back_translate=False)
        await run(fake_deepl, config, back_translate=False)

        first, second = (form["name"] for form in fake_deepl.forms(*CREATE))
        assert first.startswith("Tmp-") and second.startswith("Tmp-")
        assert first != second

    @pytest.mark.asyncio
    async def test_empty_text_makes_no_calls(self, fake_deepl, session_config):
        with pytest.raises(ValueError):
            await run(fake_deepl, session_config, text="   ")

        assert fake_deepl.calls == []


class TestFailures:
    """Error surfacing and the cleanup guarantee."""

    @pytest.mark.asyncio
    async def test_create_glossary_403_makes_no_further_calls(self, fake_deepl, session_config):
        fake_deepl.on(*CREATE, status=403, json={"message": "Forbidden"})

        with pytest.raises(RemoteError) as excinfo:
            await run(fake_deepl, session_config)

        assert excinfo.value.status_code == 403
        assert excinfo.value.step == Step.CREATE_GLOSSARY.value
        assert str(excinfo.value).startswith("create glossary failed")
        assert fake_deepl.calls == [CREATE]

    @pytest.mark.asyncio
    async def test_translate_500_still_deletes_glossary(self, fake_deepl, session_config):
        fake_deepl.on(*TRANSLATE, status=500, json={"message": "Internal error"})

        with pytest.raises(RemoteError) as excinfo:
            await run(fake_deepl, session_config)

        assert excinfo.value.status_code == 500
        assert excinfo.value.step == Step.TRANSLATE.value
        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]

    @pytest.mark.asyncio
    async def test_translate_failure_is_not_masked_by_cleanup_failure(self, fake_deepl, session_config):
        fake_deepl.on(*TRANSLATE, status=500)
        fake_deepl.on(*DELETE, status=503)

        with pytest.raises(RemoteError) as excinfo:
            await run(fake_deepl, session_config)

        assert not isinstance(excinfo.value, CleanupError)
        assert excinfo.value.status_code == 500
        assert excinfo.value.step == Step.TRANSLATE.value
        assert fake_deepl.calls.count(DELETE) == 1

    @pytest.mark.asyncio
    async def test_transport_error_on_translate_still_deletes(self, fake_deepl, session_config):
        fake_deepl.on(*TRANSLATE, raises=httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError) as excinfo:
            await run(fake_deepl, session_config)

        assert excinfo.value.step == Step.TRANSLATE.value
        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]

    @pytest.mark.asyncio
    async def test_cleanup_failure_after_success_is_reported_with_result(self, fake_deepl, session_config):
        fake_deepl.on(*DELETE, status=404, json={"message": "Glossary not found"})

        result = await run(fake_deepl, session_config, back_translate=False)

        assert result.translation.text == "Hello, world!"
        assert isinstance(result.cleanup_error, CleanupError)
        assert result.cleanup_error.step == Step.DELETE_GLOSSARY.value
        assert result.cleanup_error.glossary_id == GLOSSARY_ID
        assert result.cleanup_error.cause.status_code == 404
        assert any("delete glossary failed" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_back_translation_failure_keeps_primary_result(self, fake_deepl, session_config):
        def translate(request):
            if "glossary_id" in form_of(request):
                return httpx.Response(200, json={"translations": [{"detected_source_language": "JA", "text": "Hello, world!"}]})
            return httpx.Response(456, json={"message": "Quota exceeded"})

        fake_deepl.on(*TRANSLATE, handler=translate)

        result = await run(fake_deepl, session_config, back_translate=True)

        assert result.translation.text == "Hello, world!"
        assert result.back_translation is None
        assert result.back_translation_error.status_code == 456
        assert result.back_translation_error.step == Step.BACK_TRANSLATE.value
        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE, TRANSLATE]


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_during_translate_still_deletes_glossary(self, fake_deepl, session_config):
        translate_started = asyncio.Event()

        async def slow_translate(request):
            translate_started.set()
            await asyncio.sleep(30)
            return httpx.Response(200, json={"translations": [{"text": "too late"}]})

        fake_deepl.on(*TRANSLATE, handler=slow_translate)

        task = asyncio.create_task(run(fake_deepl, session_config))
        await asyncio.wait_for(translate_started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]

    @pytest.mark.asyncio
    async def test_cancel_during_create_makes_no_delete(self, fake_deepl, session_config):
        create_started = asyncio.Event()

        async def slow_create(request):
            create_started.set()
            await asyncio.sleep(30)
            return httpx.Response(500)

        fake_deepl.on(*CREATE, handler=slow_create)

        task = asyncio.create_task(run(fake_deepl, session_config))
        await asyncio.wait_for(create_started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert fake_deepl.calls == [CREATE]

    @pytest.mark.asyncio
    async def test_second_cancel_during_delete_waits_for_delete(self, fake_deepl, session_config):
        translate_started = asyncio.Event()
        delete_started = asyncio.Event()
        deleted = []

        async def slow_translate(request):
            translate_started.set()
            await asyncio.sleep(30)
            return httpx.Response(200, json={"translations": [{"text": "too late"}]})

        async def slow_delete(request):
            delete_started.set()
            await asyncio.sleep(0.3)
            deleted.append(request.url.path)
            return httpx.Response(204)

        fake_deepl.on(*TRANSLATE, handler=slow_translate)
        fake_deepl.on(*DELETE, handler=slow_delete)

        task = asyncio.create_task(run(fake_deepl, session_config))
        await asyncio.wait_for(translate_started.wait(), timeout=5)
        task.cancel()
        await asyncio.wait_for(delete_started.wait(), timeout=5)
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert deleted == [DELETE[1]]
        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]

    @pytest.mark.asyncio
    async def test_cancel_during_delete_after_translation_still_cancels(self, fake_deepl, session_config):
        delete_started = asyncio.Event()
        deleted = []

        async def slow_delete(request):
            delete_started.set()
            await asyncio.sleep(0.2)
            deleted.append(request.url.path)
            return httpx.Response(204)

        fake_deepl.on(*DELETE, handler=slow_delete)

        task = asyncio.create_task(run(fake_deepl, session_config))
        await asyncio.wait_for(delete_started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert deleted == [DELETE[1]]
        # No back-translation once cancelled
        assert fake_deepl.calls == [CREATE, TRANSLATE, DELETE]


class TestRunSession:

    @pytest.mark.asyncio
    async def test_run_session_sends_sanitised_glossary_file(self, fake_deepl, session_config):
        session_config.glossary_file.write_text(
            "\ufeff翻訳,translation\nbroken-row\n翻訳,duplicate\n", encoding="utf-8"
        )

        result = await run_session(
            "翻訳してください", session_config, back_translate=False, transport=fake_deepl.transport
        )

        [create_form] = fake_deepl.forms(*CREATE)
        assert create_form["entries"] == "翻訳,translation\n"
        assert result.glossary.entry_count == 1
        assert any("line 2" in w for w in result.warnings)
