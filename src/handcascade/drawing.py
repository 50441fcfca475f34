from __future__ import annotations

from typing import List, Tuple

import cv2

from .postproc import RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS
from .types import TrackResult
from .utils import bbox_from_points, clamp_int


# Connections between landmarks in user friendly order.
HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (20, 0),
    (0, 1),
    (1, 2),
    (2, 3),
    # index
    (20, 4),
    (4, 5),
    (5, 6),
    (6, 7),
    # middle
    (4, 8),
    (8, 9),
    (9, 10),
    (10, 11),
    # ring
    (8, 12),
    (12, 13),
    (13, 14),
    (14, 15),
    # little
    (12, 16),
    (16, 17),
    (17, 18),
    (18, 19),
    # palm base
    (20, 16),
]

THUMB_TIP = 3
INDEX_TIP = 7


def draw_point(frame, pt: Tuple[int, int], color=(0, 0, 255), radius=5):
    cv2.circle(frame, pt, radius, color, -1)
    return frame


def draw_text(frame, text: str, org: Tuple[int, int], color=(255, 255, 255), scale=0.6, thickness=2):
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(frame, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)
    return frame


def to_pixels(result: TrackResult, w: int, h: int) -> List[Tuple[int, int]]:
    return [
        (clamp_int(int(round(x * (w - 1))), 0, w - 1), clamp_int(int(round(y * (h - 1))), 0, h - 1))
        for x, y in result.coordinates
    ]


def draw_track_result(frame_bgr, result: TrackResult, draw_landmarks: bool = True):
    """
    Draw a tracking result produced with user friendly coordinate order.

    Coordinates are drawn as they are; draw on a mirrored frame if the engine
    runs with `mirror_x`.
    """
    thresholds = RECOMMENDED_HAND_POSE_PROBABILITY_THRESHOLDS
    if result.is_hand_present_prob < thresholds["is_hand_present"]:
        return frame_bgr

    h, w = frame_bgr.shape[:2]
    pts = to_pixels(result, w, h)

    if draw_landmarks:
        for a, b in HAND_CONNECTIONS:
            cv2.line(frame_bgr, pts[a], pts[b], (0, 255, 255), 2, cv2.LINE_AA)
        for pt in pts:
            cv2.circle(frame_bgr, pt, 3, (40, 255, 120), -1, lineType=cv2.LINE_AA)

    x0, y0, x1, y1 = bbox_from_points(pts)
    cv2.rectangle(frame_bgr, (x0, y0), (x1, y1), (0, 255, 0), 2)

    label = "Left" if result.is_left_hand_prob > thresholds["is_left_hand"] else "Right"
    label = f"{label} {result.is_hand_present_prob:.2f}"
    if result.poses.pinch_prob > thresholds["pinch"]:
        label += " pinch"
        draw_point(frame_bgr, pts[INDEX_TIP], color=(255, 0, 0), radius=7)
        draw_point(frame_bgr, pts[THUMB_TIP], color=(255, 0, 0), radius=7)
    if result.poses.fist_prob > thresholds["fist"]:
        label += " fist"
    draw_text(frame_bgr, label, (x0, max(0, y0 - 8)))
    return frame_bgr
