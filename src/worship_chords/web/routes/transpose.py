"""Stateless chord transposition endpoint."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from worship_chords.errors import InvalidKey
from worship_chords.music.chart import ChordChart, transpose_chord_chart
from worship_chords.music.chord_text import target_key_for, transpose_text
from worship_chords.music.keys import (
    key_to_chromatic_position,
    normalize_key,
    normalize_semitones,
    prefers_flats,
    semitone_distance,
)
from worship_chords.web.schemas import ChordChartModel, TransposeRequest, TransposeResponse

router = APIRouter(tags=["transpose"])


def transpose_content(
    chart: Optional[ChordChart],
    lyrics_text: Optional[str],
    original_key: Optional[str],
    target_key: Optional[str] = None,
    steps: Optional[int] = None,
) -> TransposeResponse:
    """Transpose a chart and/or chord-over-lyrics text.

    Args:
        chart: Structured chart
        lyrics_text: Chord-over-lyrics text
        original_key: Key the content is written in
        target_key: Key to move to (needs original_key)
        steps: Semitone offset, used when no target key is given

    Returns:
        Transposed content with the resolved key and offset

    Raises:
        HTTPException: 400 for unrecognized keys or a key target without an original key
    """
    has_original = bool(original_key) and key_to_chromatic_position(original_key) is not None
    if original_key and not has_original:
        raise HTTPException(400, f"Unrecognized key: {original_key}")

    try:
        if target_key:
            if not has_original:
                raise HTTPException(400, "original_key is required to transpose to a key")
            resolved = target_key_for(original_key, key=target_key)
            semitones = semitone_distance(original_key, resolved)
        else:
            semitones = normalize_semitones(steps or 0)
            resolved = target_key_for(original_key, steps=semitones) if has_original else None
    except InvalidKey as e:
        raise HTTPException(400, str(e))

    flats = prefers_flats(resolved)
    chart_out = None
    if chart is not None:
        chart_out = ChordChartModel(**transpose_chord_chart(chart, semitones, prefer_flats=flats).to_dict())
    text_out = transpose_text(lyrics_text, semitones, prefer_flats=flats) if lyrics_text is not None else None

    return TransposeResponse(
        original_key=normalize_key(original_key) if original_key else None,
        target_key=resolved,
        semitones=semitones,
        chart=chart_out,
        lyrics_text=text_out,
    )


@router.post("/transpose", response_model=TransposeResponse)
async def transpose(request: TransposeRequest) -> TransposeResponse:
    """Transpose content supplied in the request body."""
    chart = ChordChart.from_dict(request.chart.model_dump()) if request.chart else None
    return transpose_content(
        chart,
        request.lyrics_text,
        request.original_key,
        target_key=request.target_key,
        steps=request.steps,
    )
