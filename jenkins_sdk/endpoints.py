"""
Typed Jenkins API endpoint groups

Each group wraps a handful of remote API paths and turns their JSON into
models. Every call accepts an optional ``timeout`` that overrides the
client's default for that request, or a ``deadline`` (a client clock value,
see ``JenkinsClient.deadline``) shared with other calls. Calls that make
several requests spend one budget across all of them.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional

from .exceptions import JenkinsError, ProtocolError
from .models import (
    Build,
    Job,
    JobDetail,
    Node,
    PipelineRun,
    QueueItem,
    RootInfo,
    RunningBuild,
    View,
    running_builds,
)
from .paths import JOB_FIELDS, job_path, tree_param, with_query

if TYPE_CHECKING:
    from .client import JenkinsClient

logger = logging.getLogger(__name__)

# Builds of a job whose pipeline stages are looked up alongside it
STAGE_LOOKUP_LIMIT = 10

STAGE_LOG_MAX_BYTES = 500_000

BLUE_OCEAN_PIPELINES = '/blue/rest/organizations/jenkins/pipelines'


class _API:
    def __init__(self, client: 'JenkinsClient'):
        self.client = client

    def _deadline(self, timeout: Optional[float], deadline: Optional[float]) -> float:
        return deadline if deadline is not None else self.client.deadline(timeout)


class ServerAPI(_API):
    """Server root endpoint"""

    def info(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> RootInfo:
        path = with_query('/api/json', tree_param(
            'mode',
            'nodeDescription',
            'nodeName',
            'numExecutors',
            'description',
            'useCrumbs',
            'useSecurity',
        ))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline)
        return RootInfo.from_dict(data or {})


class ViewsAPI(_API):
    """Views endpoints"""

    def list(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> list[View]:
        path = with_query('/api/json', tree_param('views[name,url,jobs[name]]'))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline) or {}
        return [View.from_dict(v) for v in data.get('views') or []]

    def jobs(
        self,
        view_name: str,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> list[Job]:
        """List the jobs shown in a view"""
        path = with_query(
            f'/view/{job_path(view_name)}/api/json',
            tree_param(f'jobs[{JOB_FIELDS}]'),
        )
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline) or {}
        return [Job.from_dict(j) for j in data.get('jobs') or []]


class JobsAPI(_API):
    """Jobs endpoints"""

    def list(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> list[Job]:
        """List all top-level jobs"""
        path = with_query('/api/json', tree_param(f'jobs[{JOB_FIELDS}]'))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline) or {}
        return [Job.from_dict(j) for j in data.get('jobs') or []]

    def get(
        self,
        job_name: str,
        stage_lookups: int = STAGE_LOOKUP_LIMIT,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> JobDetail:
        """Get job details with its build history

        Args:
            job_name: Job name, folders separated by '/'
            stage_lookups: How many of the newest builds get their pipeline
                stages attached. Lookups run one after another and a failed
                lookup just leaves that build without stages.
            timeout: Budget for the job request and all stage lookups
            deadline: Shared deadline, used instead of ``timeout``

        Returns:
            JobDetail with ``builds`` in server order. Once the budget is
            spent the remaining builds are returned without stages.
        """
        deadline = self._deadline(timeout, deadline)
        path = with_query(f'/job/{job_path(job_name)}/api/json', tree_param(
            'name',
            'url',
            'color',
            'description',
            'buildable',
            'inQueue',
            'lastBuild[number,result,timestamp,duration,url]',
            'lastSuccessfulBuild[number,timestamp]',
            'lastFailedBuild[number,timestamp]',
            'healthReport[description,score]',
            'builds[number,result,timestamp,duration,url]',
        ))
        job = JobDetail.from_dict(self.client.fetch_json('GET', path, deadline=deadline) or {})

        for build in job.builds[:stage_lookups]:
            if self.client.remaining(deadline) <= 0:
                logger.debug('Out of time for stage lookups of %s at #%s', job_name, build.number)
                break
            run = self.client.pipelines.run(job_name, build.number, deadline=deadline)
            if run is not None:
                build.stages = run.stages
        return job


class BuildsAPI(_API):
    """Builds endpoints"""

    def get(
        self,
        job_name: str,
        number: int,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> Build:
        path = with_query(f'/job/{job_path(job_name)}/{number}/api/json', tree_param(
            'number',
            'result',
            'timestamp',
            'duration',
            'estimatedDuration',
            'url',
            'building',
            'displayName',
            'description',
            'executor[currentExecutable[url]]',
            'artifacts[fileName,relativePath]',
            'changeSets[items[msg,author[fullName],commitId,timestamp]]',
            'causes[shortDescription,userName,userId]',
        ))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline)
        return Build.from_dict(data or {})

    def trigger(
        self,
        job_name: str,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> None:
        """Queue a new build of a job

        Raises:
            ProtocolError: If the server answers anything but 200 or 201
        """
        path = f'/job/{job_path(job_name)}/build'
        response = self.client.request('POST', path, timeout=timeout, deadline=deadline)
        status = response.status_code
        response.close()
        if status not in (200, 201):
            raise ProtocolError(f'Unexpected status {status} triggering build', status_code=status)
        logger.info('Triggered build of %s', job_name)

    def console_log(
        self,
        job_name: str,
        number: int,
        max_bytes: int,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """Get the console output of a build, truncated to max_bytes"""
        path = f'/job/{job_path(job_name)}/{number}/consoleText'
        return self.client.fetch_text('GET', path, max_bytes, timeout=timeout, deadline=deadline)


class QueueAPI(_API):
    """Build queue endpoint"""

    def get(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> list[QueueItem]:
        path = with_query('/queue/api/json', tree_param(
            'items[id,task[name,url],why,inQueueSince,buildable,blocked,stuck]',
        ))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline) or {}
        return [QueueItem.from_dict(i) for i in data.get('items') or []]


class NodesAPI(_API):
    """Nodes (computers) endpoints"""

    def list(self, timeout: Optional[float] = None, deadline: Optional[float] = None) -> list[Node]:
        path = with_query('/computer/api/json', tree_param(
            'computer[displayName,offline,temporarilyOffline,numExecutors,'
            'executors[currentExecutable[url,number,displayName,fullDisplayName,timestamp,estimatedDuration],'
            'idle,likelyStuck,number,progress],assignedLabels[name],offlineCauseReason,idle,monitorData[*]]',
        ))
        data = self.client.fetch_json('GET', path, timeout=timeout, deadline=deadline) or {}
        return [Node.from_dict(n) for n in data.get('computer') or []]

    def running_builds(
        self,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> list[RunningBuild]:
        """Builds currently occupying an executor on any node"""
        return running_builds(self.list(timeout=timeout, deadline=deadline))


class PipelinesAPI(_API):
    """Pipeline stage endpoints (workflow API, Blue Ocean as fallback)"""

    def run(
        self,
        job_name: str,
        number: int,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> PipelineRun | None:
        """Get a pipeline run with its stages

        The workflow API request and the Blue Ocean fallback share one
        budget.

        Returns:
            The run, or None when neither the workflow API nor Blue Ocean
            knows about it (e.g. a freestyle job) or time ran out.
        """
        deadline = self._deadline(timeout, deadline)
        path = f'/job/{job_path(job_name)}/{number}/wfapi/describe'
        try:
            data = self.client.fetch_json('GET', path, deadline=deadline)
            if isinstance(data, dict):
                return PipelineRun.from_wfapi(data)
        except JenkinsError as e:
            logger.debug('wfapi describe failed for %s #%s: %s', job_name, number, e)

        path = f'{BLUE_OCEAN_PIPELINES}/{job_path(job_name)}/runs/{number}/nodes/'
        try:
            nodes = self.client.fetch_json('GET', path, deadline=deadline)
        except JenkinsError as e:
            logger.debug('Blue Ocean nodes failed for %s #%s: %s', job_name, number, e)
            return None
        if not isinstance(nodes, list):
            return None
        return PipelineRun.from_blue_ocean(number, nodes)

    def stage_log(
        self,
        job_name: str,
        number: int,
        stage_id: str,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
    ) -> str:
        """Get the log of one pipeline stage"""
        deadline = self._deadline(timeout, deadline)
        path = f'/job/{job_path(job_name)}/{number}/execution/node/{stage_id}/wfapi/log'
        try:
            text = self.client.fetch_text('GET', path, STAGE_LOG_MAX_BYTES, deadline=deadline)
        except JenkinsError as e:
            logger.debug('wfapi stage log failed for %s #%s node %s: %s', job_name, number, stage_id, e)
            path = f'{BLUE_OCEAN_PIPELINES}/{job_path(job_name)}/runs/{number}/nodes/{stage_id}/log/'
            return self.client.fetch_text('GET', path, STAGE_LOG_MAX_BYTES, deadline=deadline)
        return _unwrap_log(text)


def _unwrap_log(text: str) -> str:
    """The workflow API wraps stage logs as ``{"text": ...}``; plain text passes through."""
    stripped = text.lstrip()
    if not stripped.startswith('{'):
        return text
    try:
        data = json.loads(stripped)
    except ValueError:
        return text
    if isinstance(data, dict) and isinstance(data.get('text'), str):
        return data['text']
    return text
