from models import AlignmentReason, CaptureView

DEFAULT_LOCALE = "en"

_FRONTAL = CaptureView.FRONTAL
_SAGITTAL = CaptureView.SAGITTAL

MESSAGES: dict[str, dict[CaptureView, dict[AlignmentReason, str]]] = {
    "en": {
        _FRONTAL: {
            AlignmentReason.ALIGNED: "Good position. Hold still and take the photo.",
            AlignmentReason.NO_POSE: "Step into the frame so your whole body is visible.",
            AlignmentReason.NOT_CENTERED: "Move to the center of the frame.",
            AlignmentReason.SHOULDERS_UNEVEN: "Relax your shoulders and keep them level.",
            AlignmentReason.HIPS_UNEVEN: "Stand evenly on both feet so your hips are level.",
            AlignmentReason.CHECK_FAILED: "Face the camera and keep your shoulders, hips and head in frame.",
        },
        _SAGITTAL: {
            AlignmentReason.ALIGNED: "Good position. Hold still and take the photo.",
            AlignmentReason.NO_POSE: "Step into the frame so your whole body is visible.",
            AlignmentReason.NOT_CENTERED: "Move to the center of the frame.",
            AlignmentReason.NOT_VERTICAL: "Stand up straight with your shoulders over your hips and ankles.",
            AlignmentReason.HEAD_FORWARD: "Bring your head back over your shoulders.",
            AlignmentReason.CHECK_FAILED: "Turn fully sideways so your ear and shoulder are visible.",
        },
    },
    "ja": {
        _FRONTAL: {
            AlignmentReason.ALIGNED: "良い位置です。そのまま撮影してください。",
            AlignmentReason.NO_POSE: "全身がフレームに収まるように立ってください。",
            AlignmentReason.NOT_CENTERED: "フレームの中央に移動してください。",
            AlignmentReason.SHOULDERS_UNEVEN: "肩の力を抜いて、左右の高さをそろえてください。",
            AlignmentReason.HIPS_UNEVEN: "両足に均等に体重をかけて立ってください。",
            AlignmentReason.CHECK_FAILED: "カメラの正面を向き、肩・骨盤・頭部がフレームに収まるようにしてください。",
        },
        _SAGITTAL: {
            AlignmentReason.ALIGNED: "良い位置です。そのまま撮影してください。",
            AlignmentReason.NO_POSE: "全身がフレームに収まるように立ってください。",
            AlignmentReason.NOT_CENTERED: "フレームの中央に移動してください。",
            AlignmentReason.NOT_VERTICAL: "肩・骨盤・足首が一直線になるようにまっすぐ立ってください。",
            AlignmentReason.HEAD_FORWARD: "頭を肩の真上に戻してください。",
            AlignmentReason.CHECK_FAILED: "完全に横向きになって、耳と肩が見えるようにしてください。",
        },
    },
}


def guidance_message(view: CaptureView, reason: AlignmentReason, locale: str = DEFAULT_LOCALE) -> str:
    catalog = MESSAGES.get(locale, MESSAGES[DEFAULT_LOCALE])
    return catalog[CaptureView(view)][reason]
