import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from PySide6.QtCore import QObject, QUrl, Signal
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer

from ..config import DEFAULT_VOLUME

logger = logging.getLogger(__name__)

NONE_SOUND = "none"

# QMediaPlayer.Loops.Infinite
LOOP_FOREVER = -1


@dataclass(frozen=True)
class Sound:
    id: str
    icon: str
    url: str
    name_zh: str
    name_en: str

    def label(self, lang: str = "zh") -> str:
        return self.name_en if lang == "en" else self.name_zh


SOUNDS = (
    Sound(NONE_SOUND, "🔇", "", "无", "None"),
    Sound("rain", "🌧️", "https://soundbible.com/mp3/Rain-SoundBible.com-2065240612.mp3", "雨声", "Rain"),
    Sound("forest", "🌲", "https://soundbible.com/mp3/meadowlark_daniel-simion.mp3", "森林", "Forest"),
    Sound("ocean", "🌊", "https://soundbible.com/mp3/Ocean_Waves-Mike_Koenig-980635527.mp3", "海浪", "Ocean"),
    Sound("fire", "🔥", "https://soundbible.com/mp3/Campfire-SoundBible.com-1933587658.mp3", "篝火", "Campfire"),
    Sound("wind", "🍃", "https://soundbible.com/mp3/Wind-Mark_DiAngelo-1940285615.mp3", "微风", "Breeze"),
    Sound("stream", "💧", "https://soundbible.com/mp3/Small_Waterfall-Stephan_Schutze-1811758364.mp3", "溪流", "Stream"),
    Sound("thunder", "⛈️", "https://soundbible.com/mp3/Thunder_Crack-Stickinthemud-1910420960.mp3", "雷雨", "Thunder"),
)

SOUNDS_BY_ID = {s.id: s for s in SOUNDS}

LOAD_FAILED_MSG = "Audio failed to load, try another sound"
PLAY_FAILED_MSG = "Playback failed, please retry"


class PlaybackStatus(enum.Enum):
    STOPPED = "stopped"
    LOADING = "loading"
    PLAYING = "playing"
    ERROR = "error"


@dataclass
class SoundSession:
    sound_id: str = NONE_SOUND
    volume: int = DEFAULT_VOLUME
    status: PlaybackStatus = PlaybackStatus.STOPPED
    error: Optional[str] = None


class MediaHandle(QObject):
    """One looping QMediaPlayer with its audio output.

    Signals:
    - ready(): media is loaded and can be played
    - started(): playback actually began
    - failed(str): loading or playback failed
    """

    ready = Signal()
    started = Signal()
    failed = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._ready_sent = False
        self._output = QAudioOutput(self)
        self._player = QMediaPlayer(self)
        self._player.setAudioOutput(self._output)
        self._player.setLoops(LOOP_FOREVER)
        self._player.mediaStatusChanged.connect(self._on_media_status)
        self._player.playbackStateChanged.connect(self._on_playback_state)
        self._player.errorOccurred.connect(self._on_error)

    def load(self, url: str):
        self._player.setSource(QUrl(url))

    def play(self):
        self._player.play()

    def set_volume(self, volume: int):
        self._output.setVolume(max(0, min(100, int(volume))) / 100.0)

    def release(self):
        self.blockSignals(True)
        self._player.stop()
        self._player.setSource(QUrl())
        self.deleteLater()

    def _on_media_status(self, status):
        if status in (QMediaPlayer.MediaStatus.LoadedMedia, QMediaPlayer.MediaStatus.BufferedMedia):
            if not self._ready_sent:
                self._ready_sent = True
                self.ready.emit()
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self.failed.emit(self._player.errorString() or "invalid media")

    def _on_playback_state(self, state):
        if state == QMediaPlayer.PlaybackState.PlayingState:
            self.started.emit()

    def _on_error(self, error, text):
        if error != QMediaPlayer.Error.NoError:
            self.failed.emit(text or str(error))


class AudioController(QObject):
    """Play one ambient track from SOUNDS, looping, at a chosen volume.

    Only one MediaHandle is alive at a time: the current one is released
    before a new one is created. Failures only change the advisory status.
    """

    changed = Signal(object)

    def __init__(self, volume: int = DEFAULT_VOLUME, player_factory: Callable[[QObject], MediaHandle] = None, parent=None):
        super().__init__(parent)
        self._player_factory = player_factory or MediaHandle
        self._handle: Optional[MediaHandle] = None
        self._play_requested = False
        self._session = SoundSession(volume=max(0, min(100, int(volume))))

    @property
    def session(self) -> SoundSession:
        return replace(self._session)

    def is_active(self) -> bool:
        return self._handle is not None

    def select(self, sound_id: str):
        if sound_id == NONE_SOUND:
            self.stop()
            return
        sound = SOUNDS_BY_ID.get(sound_id)
        if sound is None:
            logger.warning("unknown sound id %r", sound_id)
            return
        self._release()
        handle = self._player_factory(self)
        handle.ready.connect(lambda h=handle: self._on_ready(h))
        handle.started.connect(lambda h=handle: self._on_started(h))
        handle.failed.connect(lambda msg, h=handle: self._on_failed(h, msg))
        handle.set_volume(self._session.volume)
        self._handle = handle
        self._play_requested = False
        self._session.sound_id = sound.id
        self._session.status = PlaybackStatus.LOADING
        self._session.error = None
        self.changed.emit(self.session)
        handle.load(sound.url)

    def set_volume(self, volume: int):
        self._session.volume = max(0, min(100, int(volume)))
        if self._handle is not None:
            self._handle.set_volume(self._session.volume)
        self.changed.emit(self.session)

    def stop(self):
        self._release()
        self._session.sound_id = NONE_SOUND
        self._session.status = PlaybackStatus.STOPPED
        self._session.error = None
        self.changed.emit(self.session)

    def _release(self):
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()

    def _on_ready(self, handle):
        if handle is not self._handle:
            return
        self._play_requested = True
        handle.play()

    def _on_started(self, handle):
        if handle is not self._handle:
            return
        self._session.status = PlaybackStatus.PLAYING
        self._session.error = None
        self.changed.emit(self.session)

    def _on_failed(self, handle, message: str):
        # a superseded handle reporting an interruption is expected
        if handle is not self._handle:
            return
        logger.warning("ambient sound %s failed: %s", self._session.sound_id, message)
        self._release()
        self._session.status = PlaybackStatus.ERROR
        self._session.error = PLAY_FAILED_MSG if self._play_requested else LOAD_FAILED_MSG
        self.changed.emit(self.session)
