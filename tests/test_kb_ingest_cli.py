import pytest
from unittest.mock import AsyncMock, MagicMock

from services.kb_ingest import kb_ingest
from shared.clients.rag.models.SearchHits import DeleteReport
from shared.models.errors import ProviderUnavailableError

RULES = "Nội quy:\nKhông hút thuốc trong phòng.\nKhách về trước 23 giờ.\n"


class TestKbIngestCli:
    @pytest.fixture
    def rag(self):
        rag = MagicMock()
        for name in ("boot", "close", "do_healthcheck", "do_ensure_index"):
            setattr(rag, name, AsyncMock())
        rag.do_delete_by_document = AsyncMock(return_value=DeleteReport())
        rag.do_bulk_index = AsyncMock(side_effect=lambda chunks: len(chunks))
        return rag

    @pytest.fixture(autouse=True)
    def managers(self, env, rag, embed_client):
        env.setattr(kb_ingest, "RAGClientManager", lambda helper_config: MagicMock(get_client=lambda: rag))
        env.setattr(kb_ingest, "EmbedClientManager", lambda helper_config: MagicMock(get_client=lambda: embed_client))

    def test_parse_args(self):
        args = kb_ingest.parse_args(["a.md", "b.pdf", "--document-id", "42", "--scope", "owner", "--owner-id", "o1"])

        assert args.paths == ["a.md", "b.pdf"]
        assert (args.document_id, args.scope, args.owner_id, args.property_id) == (42, "owner", "o1", None)
        assert not args.report_status

    @pytest.mark.asyncio
    async def test_ingests_files_with_consecutive_ids(self, tmp_path, rag):
        first = tmp_path / "rules.md"
        second = tmp_path / "more.txt"
        first.write_text(RULES, encoding="utf-8")
        second.write_text(RULES, encoding="utf-8")

        code = await kb_ingest.main([str(first), str(second), "--document-id", "42", "--owner-id", "o1"])

        assert code == 0
        rag.do_ensure_index.assert_awaited_once_with(4)
        indexed = [call.args[0][0] for call in rag.do_bulk_index.call_args_list]
        assert sorted(chunk.document_id for chunk in indexed) == [42, 43]
        assert {chunk.title for chunk in indexed} == {"rules.md", "more.txt"}
        rag.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsupported_file_is_skipped(self, tmp_path, rag):
        good = tmp_path / "rules.md"
        bad = tmp_path / "photo.png"
        good.write_text(RULES, encoding="utf-8")
        bad.write_bytes(b"\x89PNG")

        code = await kb_ingest.main([str(good), str(bad), "--document-id", "1", "--owner-id", "o1"])

        assert code == 1
        assert rag.do_bulk_index.await_count == 1

    @pytest.mark.asyncio
    async def test_unreachable_search_engine_aborts(self, tmp_path, rag):
        path = tmp_path / "rules.md"
        path.write_text(RULES, encoding="utf-8")
        rag.boot.side_effect = ProviderUnavailableError("connection refused")

        code = await kb_ingest.main([str(path), "--document-id", "1", "--owner-id", "o1"])

        assert code == 1
        rag.do_bulk_index.assert_not_called()
        rag.close.assert_awaited_once()
