from __future__ import annotations
import logging
from typing import Optional

from ..errors import PlaybackUnavailable
from ..models import Utterance

logger = logging.getLogger(__name__)


class Synthesizer:
	"""Host text-to-speech capability (cancel-then-speak)."""

	def cancel(self) -> None:
		raise NotImplementedError

	def speak(self, utterance: Utterance) -> None:
		raise NotImplementedError


class RelaySynthesizer(Synthesizer):
	# The page's speechSynthesis plays ``current``; only the latest utterance is kept
	def __init__(self) -> None:
		self.current: Optional[Utterance] = None

	def cancel(self) -> None:
		self.current = None

	def speak(self, utterance: Utterance) -> None:
		self.current = utterance


class SpeechPlayback:
	def __init__(self, synthesizer: Optional[Synthesizer], language: str = "en-US") -> None:
		self.synthesizer = synthesizer
		self.language = language

	def speak(self, text: str, *, host_supported: bool = True) -> Utterance:
		"""Interrupt whatever is playing and play ``text``. No queueing: last call wins.

		``host_supported`` is False when the page reports it has no speech synthesis.
		"""
		if self.synthesizer is None or not host_supported or not text:
			raise PlaybackUnavailable()
		utterance = Utterance(text=text, lang=self.language)
		self.synthesizer.cancel()
		self.synthesizer.speak(utterance)
		logger.debug("Speaking %d characters", len(text))
		return utterance
