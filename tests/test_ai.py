"""Tests for the generative model adapter."""

import asyncio
import json

import httpx
import pytest

from conftest import FakeModelService, model_reply
from fieldsense.ai.field_classifier import GenerativeFieldClassifier
from fieldsense.ai.prompts import (
    build_classifier_prompt,
    build_system_prompt,
    parse_classifier_response,
)
from fieldsense.ai.session import (
    AVAILABLE,
    UNAVAILABLE,
    CancellationToken,
    OllamaLanguageModel,
    PromptCancelledError,
    SessionConfig,
    run_cancellable,
)
from fieldsense.errors import (
    ModelFailureError,
    ModelTimeoutError,
    ModelUnavailableError,
)


class TestParseClassifierResponse:
    def test_plain_json(self):
        out = parse_classifier_response(model_reply("email", 0.98))
        assert out.field_type == "email"
        assert out.confidence == pytest.approx(0.98)
        assert out.generator_type == "email"

    def test_json_inside_chatter(self):
        raw = "Sure! Here you go:\n```json\n" + model_reply("cpf", 0.95) + "\n```"
        assert parse_classifier_response(raw).field_type == "cpf"

    def test_unknown_type_rejected(self):
        assert parse_classifier_response(model_reply("unknown", 0.99)) is None

    def test_type_not_in_catalogue_rejected(self):
        assert parse_classifier_response(model_reply("favourite-colour", 0.99)) is None

    def test_low_confidence_rejected(self):
        assert parse_classifier_response(model_reply("email", 0.59)) is None

    def test_generator_falls_back_to_field_type(self):
        raw = '{"fieldType": "date", "confidence": 0.8}'
        assert parse_classifier_response(raw).generator_type == "date"

        raw = '{"fieldType": "date", "confidence": 0.8, "generatorType": "nonsense"}'
        assert parse_classifier_response(raw).generator_type == "date"

    def test_specific_generator_kept(self):
        out = parse_classifier_response(model_reply("date", 0.9, "birth-date"))
        assert out.field_type == "date"
        assert out.generator_type == "birth-date"

    def test_garbage(self):
        assert parse_classifier_response("") is None
        assert parse_classifier_response("I think it is an email field") is None
        assert parse_classifier_response('{"fieldType": "email", "confidence": "high"}') is None
        assert parse_classifier_response("{not json at all}") is None


class TestPrompts:
    def test_system_prompt_lists_types(self):
        prompt = build_system_prompt(["email", "cpf"])
        assert "Valid types: email, cpf" in prompt
        assert '"fieldType"' in prompt

    def test_classifier_prompt_sections(self):
        prompt = build_classifier_prompt(
            "cep entrega",
            element_html='<input name="cep">',
            context_html="<form>...</form>",
        )
        assert prompt.index("Element HTML") < prompt.index("Surrounding HTML") < prompt.index("Field Signals")
        assert "cep entrega" in prompt

    def test_long_html_truncated(self):
        prompt = build_classifier_prompt("x", element_html="a" * 5000)
        assert "a" * 1001 not in prompt


@pytest.mark.asyncio
class TestRunCancellable:
    async def test_returns_result(self):
        async def work():
            return 42

        assert await run_cancellable(work(), CancellationToken()) == 42

    async def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()

        async def work():
            return 42

        with pytest.raises(PromptCancelledError):
            await run_cancellable(work(), token)

    async def test_cancel_interrupts_work(self):
        token = CancellationToken()
        finished = []

        async def work():
            await asyncio.sleep(5)
            finished.append(True)

        asyncio.get_running_loop().call_later(0.01, token.cancel)
        with pytest.raises(PromptCancelledError):
            await run_cancellable(work(), token)
        assert finished == []

    async def test_work_error_propagates(self):
        async def work():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await run_cancellable(work(), CancellationToken())


@pytest.mark.asyncio
class TestGenerativeFieldClassifier:
    async def test_answer(self):
        service = FakeModelService(replies=[model_reply("email", 0.95)])
        model = GenerativeFieldClassifier(service)

        out = await model.classify("e mail")

        assert out.field_type == "email"
        assert "e mail" in service.sessions[0].prompts[0]
        assert "Valid types:" in service.configs[0].system_prompt

    async def test_session_reused(self):
        service = FakeModelService(replies=[model_reply("email"), model_reply("phone")])
        model = GenerativeFieldClassifier(service)

        await model.classify("e mail")
        await model.classify("telefone")

        assert len(service.sessions) == 1

    async def test_unparseable_reply_returns_none(self):
        service = FakeModelService(replies=["no idea"])
        model = GenerativeFieldClassifier(service)

        assert await model.classify("campo") is None
        assert model.has_session

    async def test_no_service(self):
        model = GenerativeFieldClassifier(None)
        with pytest.raises(ModelUnavailableError):
            await model.classify("e mail")
        assert await model.classify_field("e mail") is None

    async def test_timeout_keeps_session(self):
        service = FakeModelService(delay=5.0)
        model = GenerativeFieldClassifier(service, timeout=0.05)

        with pytest.raises(ModelTimeoutError):
            await model.classify("e mail")

        assert model.has_session
        assert service.sessions[0].destroyed is False

    async def test_failure_discards_session(self):
        service = FakeModelService(error=RuntimeError("model crashed"))
        model = GenerativeFieldClassifier(service)

        with pytest.raises(ModelFailureError):
            await model.classify("e mail")

        assert not model.has_session
        assert service.sessions[0].destroyed is True

        with pytest.raises(ModelFailureError):
            await model.classify("e mail")
        assert len(service.sessions) == 2

    async def test_classify_field_swallows_model_errors(self):
        service = FakeModelService(error=RuntimeError("model crashed"))
        model = GenerativeFieldClassifier(service)
        assert await model.classify_field("e mail") is None

    async def test_downloadable_counts_as_available(self):
        service = FakeModelService(status="downloadable", replies=[model_reply("email")])
        model = GenerativeFieldClassifier(service)
        assert (await model.classify("e mail")).field_type == "email"

    async def test_unavailable_starts_cooldown(self, fake_clock):
        service = FakeModelService(status=UNAVAILABLE)
        model = GenerativeFieldClassifier(service, cooldown=60, clock=fake_clock)

        assert await model.is_available() is False
        assert await model.is_available() is False
        assert service.availability_calls == 1

        fake_clock.advance(59)
        assert await model.is_available() is False
        assert service.availability_calls == 1

        fake_clock.advance(2)
        service.status = AVAILABLE
        assert await model.is_available() is True
        assert service.availability_calls == 2

    async def test_probe_error_starts_cooldown(self, fake_clock):
        service = FakeModelService(status=RuntimeError("probe failed"))
        model = GenerativeFieldClassifier(service, clock=fake_clock)

        with pytest.raises(ModelUnavailableError):
            await model.classify("e mail")
        with pytest.raises(ModelUnavailableError):
            await model.classify("e mail")
        assert service.availability_calls == 1

    async def test_session_create_failure_starts_cooldown(self, fake_clock):
        class BrokenCreate(FakeModelService):
            create_calls = 0

            async def create(self, config):
                self.create_calls += 1
                raise RuntimeError("out of memory")

        service = BrokenCreate()
        model = GenerativeFieldClassifier(service, cooldown=60, clock=fake_clock)

        for _ in range(5):
            assert await model.classify_field("e mail") is None
        assert service.availability_calls == 1
        assert service.create_calls == 1

        fake_clock.advance(61)
        assert await model.classify_field("e mail") is None
        assert service.create_calls == 2

    async def test_close_destroys_session(self):
        service = FakeModelService(replies=[model_reply("email")])
        model = GenerativeFieldClassifier(service)
        await model.classify("e mail")

        await model.close()

        assert not model.has_session
        assert service.sessions[0].destroyed


def _ollama(handler, model="phi3:mini"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaLanguageModel(url="http://ollama.test/", model=model, client=client)


@pytest.mark.asyncio
class TestOllamaLanguageModel:
    async def test_available_when_model_installed(self):
        def handler(request):
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": [{"name": "phi3:mini"}, {"name": "llama3:8b"}]})

        assert await _ollama(handler).availability() == AVAILABLE

    async def test_unavailable_when_model_missing(self):
        def handler(request):
            return httpx.Response(200, json={"models": [{"name": "llama3:8b"}]})

        assert await _ollama(handler).availability() == UNAVAILABLE

    async def test_unavailable_when_server_down(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await _ollama(handler).availability() == UNAVAILABLE

    async def test_unavailable_on_http_error(self):
        def handler(request):
            return httpx.Response(500)

        assert await _ollama(handler).availability() == UNAVAILABLE

    async def test_prompt_posts_chat(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": model_reply("cep")}})

        service = _ollama(handler)
        session = await service.create(SessionConfig(system_prompt="classify fields", temperature=0.2))

        reply = await session.prompt("Classify this form field", cancellation_token=CancellationToken())

        assert parse_classifier_response(reply).field_type == "cep"
        assert seen["path"] == "/api/chat"
        body = seen["body"]
        assert body["model"] == "phi3:mini"
        assert body["stream"] is False
        assert body["options"]["temperature"] == 0.2
        assert body["messages"][0]["role"] == "system"
        assert body["messages"][0]["content"].startswith("classify fields")
        assert body["messages"][1] == {"role": "user", "content": "Classify this form field"}

    async def test_destroyed_session_refuses_prompts(self):
        def handler(request):
            return httpx.Response(200, json={"message": {"content": ""}})

        session = await _ollama(handler).create(SessionConfig(system_prompt="x"))
        await session.destroy()

        with pytest.raises(ModelFailureError):
            await session.prompt("hello")

    async def test_http_error_becomes_model_failure(self):
        def handler(request):
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": [{"name": "phi3:mini"}]})
            return httpx.Response(500, json={"error": "out of memory"})

        model = GenerativeFieldClassifier(_ollama(handler))

        with pytest.raises(ModelFailureError):
            await model.classify("e mail")
        assert not model.has_session
