"""Camera/laser pose configuration and its JSON persistence."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace

logger = logging.getLogger(__name__)

# Keys written by the original configuration panel
_PANEL_KEYS = {
    "camX": "cam_x",
    "camY": "cam_y",
    "camZ": "cam_z",
    "camPitch": "cam_pitch",
    "camRoll": "cam_roll",
    "camYaw": "cam_yaw",
    "laserX": "laser_x",
    "laserY": "laser_y",
    "laserZ": "laser_z",
    "laserPitch": "laser_pitch",
    "laserRoll": "laser_roll",
    "laserYaw": "laser_yaw",
    "focalLength": "focal_length_mm",
    "pixelSize": "pixel_size_um",
    "imageWidth": "image_width",
    "imageHeight": "image_height",
}


@dataclass(frozen=True)
class PoseConfig:
    """Static geometry of the camera and laser for one triangulation call.

    Positions are world millimetres, angles are degrees.
    """

    cam_x: float = 0.0
    cam_y: float = 0.0
    cam_z: float = 0.0
    cam_pitch: float = 0.0
    cam_roll: float = 0.0
    cam_yaw: float = 0.0

    laser_x: float = 0.0
    laser_y: float = -500.0
    laser_z: float = 0.0
    laser_pitch: float = 30.0
    laser_roll: float = 0.0
    laser_yaw: float = 0.0

    focal_length_mm: float = 24.0
    pixel_size_um: float = 11.0
    image_width: int = 2048
    image_height: int | None = 1152

    def __post_init__(self):
        if self.focal_length_mm <= 0:
            raise ValueError(f"focal_length_mm must be positive, got {self.focal_length_mm}")
        if self.pixel_size_um <= 0:
            raise ValueError(f"pixel_size_um must be positive, got {self.pixel_size_um}")
        if self.image_width <= 0:
            raise ValueError(f"image_width must be positive, got {self.image_width}")

    @property
    def camera_position(self) -> tuple[float, float, float]:
        return (self.cam_x, self.cam_y, self.cam_z)

    @property
    def laser_position(self) -> tuple[float, float, float]:
        return (self.laser_x, self.laser_y, self.laser_z)

    def with_image_width(self, image_width: int) -> "PoseConfig":
        return replace(self, image_width=int(image_width))

    @classmethod
    def from_dict(cls, data: dict) -> "PoseConfig":
        """Build a pose from snake_case or panel-style camelCase keys.

        Raises:
            ValueError: If a known field has a non-numeric value
        """
        known = {f.name: f for f in fields(cls)}
        values = {}

        for key, raw in data.items():
            name = _PANEL_KEYS.get(key, key)
            if name not in known:
                logger.warning("Ignoring unknown pose field: %s", key)
                continue
            if raw is None:
                if name == "image_height":
                    values[name] = None
                continue
            try:
                if name in ("image_width", "image_height"):
                    values[name] = int(raw)
                else:
                    values[name] = float(raw)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid value for pose field '{key}': {raw!r}") from None

        return cls(**values)


def load_pose_config(file_path: str) -> PoseConfig:
    """Load a pose configuration from a JSON file.

    Args:
        file_path: Input file path

    Returns:
        PoseConfig with unspecified fields left at their defaults

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not a JSON object or holds invalid values
    """
    with open(file_path) as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not contain a JSON object.")

    return PoseConfig.from_dict(data)


def save_pose_config(file_path: str, pose: PoseConfig) -> str:
    """Save a pose configuration to a JSON file.

    Args:
        file_path: Output file path
        pose: Pose to save

    Returns:
        Absolute path to saved file
    """
    os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)

    with open(file_path, "w") as f:
        json.dump(asdict(pose), f, indent=2)

    return os.path.abspath(file_path)


def parse_vector_string(vector_str: str | None) -> tuple[float, float, float] | None:
    """Parse 'x,y,z' into a float triple.

    Args:
        vector_str: String in format 'x,y,z' or None

    Returns:
        Tuple (x, y, z) or None if input is None/empty

    Raises:
        ValueError: If the string does not hold exactly three numbers
    """
    if not vector_str:
        return None
    parts = vector_str.split(",")
    if len(parts) != 3:
        raise ValueError(f"Expected 'x,y,z', got '{vector_str}'")
    x, y, z = map(float, parts)
    return (x, y, z)
