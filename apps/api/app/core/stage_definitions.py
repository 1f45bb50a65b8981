"""Photo folder definitions and the approval pipeline ordering."""

from __future__ import annotations

from app.core.config import settings
from app.db.enums import PhotoStage


FOLDER_TITLES = {
    PhotoStage.REFERENCES: "References",
    PhotoStage.ALL_PHOTOS: "All Photos",
    PhotoStage.SELECTED_PHOTOS: "Selected Photos",
    PhotoStage.FINAL_PHOTOS: "Final Photos",
}

FOLDER_DESCRIPTIONS = {
    PhotoStage.REFERENCES: "Sample shots, mood boards, and inspiration images provided by the client",
    PhotoStage.ALL_PHOTOS: "Raw and unedited photos from the event or photo session",
    PhotoStage.SELECTED_PHOTOS: "Approved photos selected for final editing and delivery",
    PhotoStage.FINAL_PHOTOS: "Final edited photos ready for client delivery and review",
}

# References never move; photos only ever advance one step at a time.
PIPELINE_ORDER = [
    PhotoStage.ALL_PHOTOS,
    PhotoStage.SELECTED_PHOTOS,
    PhotoStage.FINAL_PHOTOS,
]


def bucket_for(stage: PhotoStage) -> str:
    """Bucket name backing a folder."""
    return {
        PhotoStage.REFERENCES: settings.BUCKET_REFERENCES,
        PhotoStage.ALL_PHOTOS: settings.BUCKET_ALL_PHOTOS,
        PhotoStage.SELECTED_PHOTOS: settings.BUCKET_SELECTED_PHOTOS,
        PhotoStage.FINAL_PHOTOS: settings.BUCKET_FINAL_PHOTOS,
    }[stage]


def next_stage(stage: PhotoStage) -> PhotoStage | None:
    """Stage a photo advances to, or None at the end / outside the pipeline."""
    if stage not in PIPELINE_ORDER:
        return None
    index = PIPELINE_ORDER.index(stage)
    if index + 1 >= len(PIPELINE_ORDER):
        return None
    return PIPELINE_ORDER[index + 1]


def is_adjacent_transition(source: PhotoStage, target: PhotoStage) -> bool:
    return next_stage(source) == target


def get_folder_defs() -> list[dict[str, object]]:
    """Folder definitions in display order."""
    folders: list[dict[str, object]] = []
    for order, stage in enumerate(PhotoStage, start=1):
        folders.append(
            {
                "stage": stage,
                "title": FOLDER_TITLES[stage],
                "description": FOLDER_DESCRIPTIONS[stage],
                "bucket": bucket_for(stage),
                "order": order,
                "in_pipeline": stage in PIPELINE_ORDER,
            }
        )
    return folders
