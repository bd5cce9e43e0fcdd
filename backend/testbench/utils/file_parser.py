# testbench/backend/testbench/utils/file_parser.py
"""
테이블 파일 파서 유틸리티

업로드된 CSV / 스프레드시트 파일을 느슨한 타입의 행(dict) 목록으로 변환하고,
결과 행 목록을 다시 CSV / 스프레드시트 바이트로 직렬화합니다.

id / input / expected 외의 컬럼은 고정 스키마 없이 그대로 보존되어
업로드 → 저장 → 내보내기 전 과정을 거쳐 되돌아옵니다.
"""

import csv
import io
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import chardet
import numpy as np
import pandas as pd

from testbench.utils.logger import logger
from testbench.utils.exceptions import UnsupportedFormatError, ValidationError


class TabularFormat(str, Enum):
    """지원하는 테이블 파일 형식"""
    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"


EXTENSION_FORMATS: Dict[str, TabularFormat] = {
    "csv": TabularFormat.DELIMITED,
    "xlsx": TabularFormat.SPREADSHEET,
    "xls": TabularFormat.SPREADSHEET,
}

# 업로드 시 필수 컬럼
REQUIRED_COLUMNS: Tuple[str, ...] = ("id", "input", "expected")

# 결과 내보내기 컬럼 (업로드 시 추가 컨텍스트로 보존하지 않음)
RESULT_COLUMNS: Tuple[str, ...] = ("actual", "score", "reasoning")

RESERVED_COLUMNS: Tuple[str, ...] = REQUIRED_COLUMNS + RESULT_COLUMNS

# 검증 오류 메시지에 나열할 최대 행 수
MAX_REPORTED_ROWS = 10


@dataclass
class CaseRow:
    """검증을 통과한 테스트 케이스 행"""
    case_id: str
    input: str
    expected: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.case_id,
            "input": self.input,
            "expected": self.expected,
            **self.extra,
        }


def get_extension(filename: Optional[str]) -> str:
    """파일명에서 소문자 확장자 추출 (점 제외)"""
    return Path(filename or "").suffix.lower().lstrip(".")


def resolve_format(filename: Optional[str]) -> TabularFormat:
    """
    파일명 확장자로 테이블 형식 결정

    Args:
        filename: 업로드 파일명

    Returns:
        TabularFormat: 결정된 형식

    Raises:
        UnsupportedFormatError: csv / xlsx / xls 이외의 확장자
    """
    extension = get_extension(filename)
    tabular_format = EXTENSION_FORMATS.get(extension)

    if tabular_format is None:
        raise UnsupportedFormatError(
            f"지원하지 않는 파일 형식입니다: '{filename}' (CSV, Excel 파일만 지원)",
            filename=filename,
            extension=extension,
            details={"supported_extensions": sorted(EXTENSION_FORMATS)}
        )

    return tabular_format


def parse_rows(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """
    업로드 바이트를 행 목록으로 파싱

    Args:
        content: 파일 바이트
        filename: 원본 파일명 (형식 결정에 사용)

    Returns:
        List[Dict[str, Any]]: 헤더를 키로 하는 행 목록
    """
    return [row for _, row in _parse_positioned_rows(content, filename)]


def parse_validated_test_rows(content: bytes, filename: str) -> List[CaseRow]:
    """
    업로드 바이트를 파싱하고 필수 필드(id, input, expected)를 검증

    하나라도 필수 값이 비어 있는 행이 있으면 전체 업로드를 거부합니다.

    Args:
        content: 파일 바이트
        filename: 원본 파일명

    Returns:
        List[CaseRow]: 정규화된 테스트 케이스 행 목록

    Raises:
        ValidationError: 필수 필드 누락 행이 존재하는 경우
    """
    positioned_rows = _parse_positioned_rows(content, filename)

    case_rows: List[CaseRow] = []
    errors: List[Dict[str, Any]] = []

    for row_number, row in positioned_rows:
        missing = [column for column in REQUIRED_COLUMNS if _is_blank(row.get(column))]
        if missing:
            errors.append({"row": row_number, "missing": missing})
            continue

        case_rows.append(
            CaseRow(
                case_id=str(row["id"]),
                input=str(row["input"]),
                expected=str(row["expected"]),
                extra={key: value for key, value in row.items() if key not in RESERVED_COLUMNS},
            )
        )

    if errors:
        reported = ", ".join(
            f"{error['row']}행({'/'.join(error['missing'])})"
            for error in errors[:MAX_REPORTED_ROWS]
        )
        if len(errors) > MAX_REPORTED_ROWS:
            reported += f" 외 {len(errors) - MAX_REPORTED_ROWS}건"

        raise ValidationError(
            f"필수 필드(id, input, expected)가 누락된 행이 있습니다: {reported}",
            field="/".join(sorted({name for error in errors for name in error["missing"]})),
            details={"errors": errors}
        )

    return case_rows


def serialize_delimited(rows: Sequence[Dict[str, Any]]) -> bytes:
    """
    행 목록을 UTF-8 CSV 바이트로 직렬화

    헤더는 모든 행의 키를 처음 등장한 순서대로 합친 것이며, 값은 문자열로 변환됩니다.
    """
    header = _collect_header(rows)
    if not header:
        return b""

    buffer = io.StringIO(newline="")
    writer = csv.DictWriter(buffer, fieldnames=header, restval="")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _stringify(row.get(key)) for key in header})

    return buffer.getvalue().encode("utf-8")


def serialize_spreadsheet(rows: Sequence[Dict[str, Any]], sheet_name: str = "Sheet1") -> bytes:
    """
    행 목록을 단일 시트 xlsx 워크북 바이트로 직렬화

    Args:
        rows: 행 목록
        sheet_name: 시트 이름 (Excel 제한에 따라 31자까지 사용)

    Returns:
        bytes: xlsx 파일 바이트
    """
    header = _collect_header(rows)
    frame = pd.DataFrame(
        [{key: _cell_value(row.get(key)) for key in header} for row in rows],
        columns=header,
    )

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=(sheet_name or "Sheet1")[:31], index=False)

    return buffer.getvalue()


def _parse_positioned_rows(content: bytes, filename: str) -> List[Tuple[int, Dict[str, Any]]]:
    """형식에 맞는 파서로 (파일 내 행 번호, 행) 목록 생성"""
    tabular_format = resolve_format(filename)

    if tabular_format is TabularFormat.DELIMITED:
        rows = _parse_delimited(content)
    else:
        rows = _parse_spreadsheet(content)

    logger.info(f"파일 파싱 완료: {filename}, 형식: {tabular_format.value}, 행 수: {len(rows)}")
    return rows


def _parse_delimited(content: bytes) -> List[Tuple[int, Dict[str, Any]]]:
    """
    CSV 파싱

    첫 줄을 헤더로 사용하고 빈 줄은 건너뜁니다.
    필드 수가 헤더와 다른 행과 인용부호 오류는 모두 모아서 한 번에 보고합니다.
    """
    text = _decode_text(content)
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)

    header: Optional[List[str]] = None
    rows: List[Tuple[int, Dict[str, Any]]] = []
    errors: List[Dict[str, Any]] = []
    last_error_line = -1

    while True:
        try:
            record = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            if reader.line_num == last_error_line:
                break
            last_error_line = reader.line_num
            errors.append({"row": reader.line_num, "message": str(e)})
            continue

        if not record:
            continue

        if header is None:
            header = record
            duplicates = sorted({name for name in header if header.count(name) > 1})
            if duplicates:
                raise ValidationError(
                    f"CSV 헤더에 중복된 컬럼이 있습니다: {', '.join(duplicates)}",
                    details={"duplicate_columns": duplicates}
                )
            continue

        if len(record) != len(header):
            errors.append({
                "row": reader.line_num,
                "message": f"expected {len(header)} fields, got {len(record)}"
            })
            continue

        rows.append((reader.line_num, dict(zip(header, record))))

    if errors:
        raise ValidationError(
            f"CSV 파싱 오류 {len(errors)}건",
            details={"errors": errors}
        )

    return rows


def _parse_spreadsheet(content: bytes) -> List[Tuple[int, Dict[str, Any]]]:
    """
    스프레드시트 파싱

    첫 번째 시트만 읽고, 헤더 행을 필드명으로 사용하며 빈 셀은 빈 문자열로 채웁니다.
    """
    try:
        workbook = pd.ExcelFile(io.BytesIO(content))
    except Exception as e:
        raise ValidationError(
            f"스프레드시트 파일을 읽을 수 없습니다: {str(e)}",
            details={"original_error": str(e)}
        ) from e

    with workbook:
        if not workbook.sheet_names:
            raise ValidationError("스프레드시트에 시트가 없습니다.")

        frame = workbook.parse(workbook.sheet_names[0], dtype=object)

    frame = frame.dropna(how="all")
    frame = frame.astype(object).where(pd.notna(frame), "")

    rows: List[Tuple[int, Dict[str, Any]]] = []
    for index, record in zip(frame.index, frame.to_dict(orient="records")):
        # 시트 행 번호: 헤더가 1행이므로 데이터는 2행부터
        row_number = int(index) + 2
        rows.append((row_number, {str(key): _to_scalar(value) for key, value in record.items()}))

    return rows


def _decode_text(content: bytes) -> str:
    """UTF-8(BOM 허용)로 디코딩하고, 실패 시 인코딩 감지"""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(content)
    encoding = detected.get("encoding") or "utf-8"

    try:
        text = content.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise ValidationError(
            f"CSV 파일 인코딩을 해석할 수 없습니다: {encoding}",
            details={"encoding": encoding, "original_error": str(e)}
        ) from e

    logger.info(f"CSV 인코딩 감지: {encoding} (신뢰도 {detected.get('confidence')})")
    return text


def _collect_header(rows: Sequence[Dict[str, Any]]) -> List[str]:
    """모든 행의 키를 처음 등장한 순서대로 합침"""
    header: Dict[str, None] = {}
    for row in rows:
        for key in row:
            header.setdefault(key, None)
    return list(header)


def _to_scalar(value: Any) -> Any:
    """스프레드시트 셀 값을 JSON 저장 가능한 스칼라로 변환"""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return str(value)


def _cell_value(value: Any) -> Any:
    return "" if value is None else value


def _stringify(value: Any) -> str:
    return "" if value is None else str(value)


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""
