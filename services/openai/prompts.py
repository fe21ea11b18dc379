"""Prompt helpers for screen transcription and answer generation."""

from __future__ import annotations


def transcription_system_prompt() -> str:
	"""Return the system prompt for vision-model OCR."""
	return (
		"You are a precise OCR engine. Transcribe every piece of legible text in the screenshot, "
		"top to bottom and left to right, one visual line per output line. "
		"Do not describe the image, translate, summarize, or add commentary. "
		"If no text is visible, return an empty response."
	)


def transcription_user_prompt() -> str:
	return "Transcribe the text in this screenshot."


def answer_system_prompt() -> str:
	"""Return the system prompt for the screen-content assistant."""
	return (
		"You are a professional screen-content analysis assistant. The user message contains text "
		"recognized by OCR from a screenshot. Identify the question or key information it contains and "
		"give a clear, accurate answer or explanation. If the text contains code or error messages, "
		"pay particular attention to them and propose a fix."
	)


def answer_user_prompt(text: str) -> str:
	"""Return the user prompt wrapping the OCR transcript."""
	return (
		f"The following text was recognized from a screenshot:\n\n{text}\n\n"
		"Analyze it, find the question or key information, and give a professional answer. "
		"Also provide a short title (at most ten words) that summarizes the topic."
	)
