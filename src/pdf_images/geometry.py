from __future__ import annotations

from .contracts import PageBox, PageTransform


def compute_page_transform(original_box: PageBox, target_width: float) -> PageTransform:
    """
    Transform that rescales a page (or image rectangle) to `target_width`.

    Content is scaled uniformly first, then the original lower-left corner is
    moved to the new origin in scaled units:

        [scale 0 0 scale -x*scale -y*scale]

    The new box is always origin-normalized to (0, 0). A box with width <= 0
    yields the identity transform and the unchanged box.
    """

    if original_box.width <= 0:
        return PageTransform(
            new_box=original_box,
            scale_x=1.0,
            skew_y=0.0,
            skew_x=0.0,
            scale_y=1.0,
            shift_x=0.0,
            shift_y=0.0,
        )

    scale = target_width / original_box.width
    target_height = original_box.height * scale

    return PageTransform(
        new_box=PageBox(x=0.0, y=0.0, width=float(target_width), height=target_height),
        scale_x=scale,
        skew_y=0.0,
        skew_x=0.0,
        scale_y=scale,
        shift_x=-original_box.x * scale,
        shift_y=-original_box.y * scale,
    )
