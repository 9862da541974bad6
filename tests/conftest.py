from __future__ import annotations

import os

import pytest

# Set env before any bendrija imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.bendrija_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
# Tests never reach the document-analysis service; individual tests stub it.
os.environ["OPENAI_API_KEY"] = ""


@pytest.fixture(autouse=True)
def _reset_db() -> None:
    import bendrija.models  # noqa: F401
    from bendrija.core.db import engine
    from bendrija.core.models import Base

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture
def statement_text():
    def _build(
        *,
        series: str = "TAUR",
        number: str = "000582",
        address: str = "V.Mykolaičio-Putino g. 10-07",
        buyer: str = "Jonas Jonaitis",
        payment_code: str = "98765",
        total: str = "25,55",
    ) -> str:
        return (
            "## SĄSKAITA - FAKTŪRA\n"
            f"Serija: {series} Nr. {number}\n"
            "2025 m. gruodžio 31 d.\n"
            "Apmokėti iki: 2026-01-20\n\n"
            "Pirkėjas:\n"
            f"{buyer}\n"
            "Obj.adresas:\n"
            f"{address}\n"
            f"Jūsų mokėtojo kodą: {payment_code}\n\n"
            "| Pavadinimas | Mato vnt. | Kiekis | Tarifas | Suma |\n"
            "|---|---|---|---|---|\n"
            "| T1 Šildymas | kWh | 120,5 | 0,1000 | 12,05 |\n"
            "| T2 Karštas vanduo | m3 | 3 | 4,50 | 13,50 |\n\n"
            "Paskutinė mokėtina suma buvo, €: 40,00\n"
            "Gautos įmokos, €: 40,00\n"
            "Skola (+) / Permoka (-), €: 0,00\n"
            f"Priskaityta suma, €: {total}\n"
            f"MOKĖTINA SUMA, €: {total}\n"
        )

    return _build
