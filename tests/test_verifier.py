import re

import pytest

from idreview.models import VerificationRequest
from idreview.verifier import (
    FULL_MATCH,
    NO_MATCH,
    PARTIAL_MATCH,
    Verifier,
    badge_for,
    extract_date,
    normalize_text,
)
from tests.helpers.fakes import ANNA_TEXT, LUCA_TEXT


@pytest.mark.parametrize(
    "raw",
    ["", "Mario Rossi-Bianchi, nato a Perù", "  ÀÉÎÕÜ  çñ\t\n!!", "D'ANGELO  Maria-Chiara", "12/03/1995"],
)
def test_normalize_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_strips_accents_and_punctuation():
    result = normalize_text("Mario Rossi-Bianchi, nato a Perù")
    assert result == "mario rossi bianchi nato a peru"
    assert re.fullmatch(r"[a-z0-9 ]*", result)


def test_normalize_handles_empty_input():
    assert normalize_text(None) == ""
    assert normalize_text("") == ""
    assert normalize_text("   ") == ""


def test_normalize_collapses_ocr_noise():
    assert normalize_text("  NICCOLÒ\n\n|  D'AMICO ") == "niccolo d amico"


@pytest.mark.parametrize("iso", ["1995-03-12", "2001-11-30", "1987-01-05"])
def test_extract_date_recovers_embedded_dmy(iso):
    year, month, day = iso.split("-")
    text = f"COGNOME ROSSI NOME MARIO NATO IL {day}/{month}/{year} A MILANO (MI)"
    assert extract_date(text) == iso


def test_extract_date_year_first():
    assert extract_date("scadenza 2031.7.4 emesso") == "2031-07-04"


def test_extract_date_pads_single_digits():
    assert extract_date("nato il 5-3-1990") == "1990-03-05"


def test_extract_date_takes_first_occurrence():
    assert extract_date("NASCITA 12.03.1995 RILASCIO 01.02.2020") == "1995-03-12"


def test_extract_date_returns_none_without_date():
    assert extract_date("CARTA DI IDENTITA REPUBBLICA ITALIANA") is None
    assert extract_date("") is None
    assert extract_date(None) is None


def test_extract_date_two_digit_year_is_2000s():
    assert extract_date("01-02-99") == "2099-02-01"


def test_extract_date_does_not_validate_ranges():
    assert extract_date("45/13/1990") == "1990-13-45"


def test_full_match(anna_request):
    result = Verifier().match(ANNA_TEXT, anna_request)
    assert result.name_matched is True
    assert result.last_name_matched is True
    assert result.date_matched is True
    assert result.extracted_date == "1995-03-12"
    assert result.score == 3


def test_no_match(anna_request):
    result = Verifier().match(LUCA_TEXT, anna_request)
    assert (result.name_matched, result.last_name_matched, result.date_matched) == (False, False, False)
    assert result.extracted_date == "1990-01-01"
    assert result.score == 0


def test_name_inside_longer_token_still_matches():
    request = VerificationRequest(id="u1", first_name="Mario", last_name="Rossi")
    result = Verifier().match("CARTA D'IDENTITA MARIOX ROSSI", request)
    assert result.name_matched is True
    assert result.last_name_matched is True


def test_accented_names_match_plain_ocr():
    request = VerificationRequest(id="u1", first_name="Niccolò", last_name="D'Amico")
    result = Verifier().match("NICCOLO D AMICO", request)
    assert result.name_matched and result.last_name_matched


def test_missing_birth_date_never_matches():
    request = VerificationRequest(id="u1", first_name="Anna", last_name="Verdi")
    result = Verifier().match(ANNA_TEXT, request)
    assert result.date_matched is False
    assert result.extracted_date == "1995-03-12"
    assert result.score == 2


def test_missing_names_never_match():
    request = VerificationRequest(id="u1", first_name="", birth_date="1995-03-12")
    result = Verifier().match(ANNA_TEXT, request)
    assert result.name_matched is False
    assert result.last_name_matched is False
    assert result.score == 1


def test_empty_text(anna_request):
    result = Verifier().match("", anna_request)
    assert result.score == 0
    assert result.extracted_date is None


@pytest.mark.parametrize(
    "text",
    [ANNA_TEXT, LUCA_TEXT, "ANNA 12/03/1995", "VERDI", "", "ANNA VERDI 01/01/2000"],
)
def test_score_counts_true_fields(anna_request, text):
    result = Verifier().match(text, anna_request)
    assert result.score in (0, 1, 2, 3)
    assert result.score == sum([result.name_matched, result.last_name_matched, result.date_matched])


def test_match_result_serializes_camel_case(anna_request):
    data = Verifier().match(ANNA_TEXT, anna_request).model_dump(by_alias=True)
    assert data == {
        "nameMatched": True,
        "lastNameMatched": True,
        "dateMatched": True,
        "extractedDate": "1995-03-12",
        "score": 3,
    }


def test_badge_tiers():
    assert badge_for(3) == FULL_MATCH
    assert badge_for(2) == PARTIAL_MATCH
    assert badge_for(1) == PARTIAL_MATCH
    assert badge_for(0) == NO_MATCH
